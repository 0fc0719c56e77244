# setup.py
from setuptools import setup, find_packages

setup(
    name="sitemapper",
    version="1.0.0",
    description="Построение карты сайта обходом ссылок в ширину (html, text, js, xml)",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"sitemapper": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "jinja2>=3.1",
        "lxml>=4.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "sitemapper=sitemapper.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
