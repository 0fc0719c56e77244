# === FILE: sitemapper/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для построения карты сайта через командную строку.

Основные опции:
  --url, -u URL           Корневой URL (обязателен, если не задан в --config)
  --depth N               Глубина карты (по умолчанию без ограничения)
  --format FORMAT         html | text | js | xml (по умолчанию html)
  --summary N             Длина аннотации страницы в символах (200)
  --title TEXT            Заголовок карты сайта
  --output, -o PATH       Записать результат в файл (иначе stdout)

Сеть:
  --proxy URL             HTTP-прокси (приоритет над --envproxy)
  --envproxy/--no-envproxy  Брать прокси из $http_proxy (по умолчанию да)
  --authen                Запросить имя пользователя и пароль
  --email ADDRESS         Адрес для заголовка From
  --concurrency N, --timeout SEC, --delay SEC, --retries N,
  --deadline SEC, --max-pages N, --no-robots

Диагностика:
  --verbose               Подробный журнал запросов и ошибок (stderr)
  --log-file PATH         Дублировать журнал в файл
  --version, -v           Показать версию

Пример:
  sitemapper --url http://www.example.com/ --depth 2 --format text -o sitemap.txt
"""
import asyncio
import signal
import sys
from pathlib import Path

import click
from click.core import ParameterSource
from pydantic import ValidationError

from sitemapper import __version__
from sitemapper.config import OutputFormat, load_config
from sitemapper.engine import start_crawl
from sitemapper.errors import UrlError
from sitemapper.logger import configure
from sitemapper.report import get_renderer

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


async def _crawl(cfg):
    """Обход с отменой по SIGINT: уже собранное возвращается как частичный результат."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        # no signal handlers on this platform / outside the main thread
        cancel_via_signal = False
    else:
        cancel_via_signal = True
    try:
        return await start_crawl(cfg, cancel_event=cancel)
    finally:
        if cancel_via_signal:
            loop.remove_signal_handler(signal.SIGINT)


def _missing_root(exc: ValidationError) -> bool:
    return any(err["type"] == "missing" and tuple(err["loc"]) == ("root_url",) for err in exc.errors())


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='Sitemapper, version %(version)s')
@click.option('--url', '-u', 'url', default=None, help='Корневой URL сайта.')
@click.option('--depth', '-d', 'depth', type=click.IntRange(min=0), default=None,
              help='Глубина карты сайта (без ограничения, если не указана).')
@click.option('--format', '-f', 'fmt', default=None,
              type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
              help='Формат вывода (по умолчанию html).')
@click.option('--summary', 'summary', type=click.IntRange(min=0), default=None,
              help='Длина аннотации страницы в символах (по умолчанию 200).')
@click.option('--title', 'title', default=None, help='Заголовок карты сайта.')
@click.option('--email', 'email', default=None, help='Контактный адрес для заголовка From.')
@click.option('--proxy', 'proxy', default=None, help='HTTP-прокси.')
@click.option('--envproxy/--no-envproxy', 'envproxy', default=True, show_default=True,
              help='Использовать прокси из переменной окружения http_proxy.')
@click.option('--authen', is_flag=True, help='Запросить имя пользователя и пароль (HTTP Basic).')
@click.option('--username', 'username', default=None, help='Имя пользователя для HTTP Basic.')
@click.option('--password', 'password', default=None, help='Пароль для HTTP Basic.')
@click.option('--output', '-o', 'output', default=None,
              type=click.Path(dir_okay=False, path_type=Path),
              help='Файл для результата (stdout, если не указан).')
@click.option('--concurrency', 'concurrency', type=click.IntRange(min=1), default=None,
              help='Число одновременных запросов.')
@click.option('--timeout', 'timeout', type=float, default=None, help='Таймаут одного запроса (секунд).')
@click.option('--delay', 'delay', type=float, default=None, help='Пауза между запросами к одному хосту (секунд).')
@click.option('--retries', 'retries', type=click.IntRange(min=0), default=None,
              help='Повторные попытки при сетевых ошибках и 5xx.')
@click.option('--deadline', 'deadline', type=float, default=None,
              help='Общий лимит времени обхода (секунд); результат может быть неполным.')
@click.option('--max-pages', 'max_pages', type=click.IntRange(min=1), default=None,
              help='Макс. число загружаемых страниц.')
@click.option('--no-robots', 'no_robots', is_flag=True, help='Не учитывать robots.txt.')
@click.option('--config', '-c', 'config_path', default=None,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML/JSON-файл с настройками (опции командной строки важнее).')
@click.option('--template', '-t', 'template_dir', default=None,
              type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Папка с Jinja2-шаблонами для html/js.')
@click.option('--verbose', is_flag=True, help='Подробные сообщения о запросах и ошибках.')
@click.option('--log-file', 'log_file', default=None,
              type=click.Path(dir_okay=False, path_type=Path),
              help='Путь к файлу логов.')
@click.pass_context
def cli(ctx, url, depth, fmt, summary, title, email, proxy, envproxy, authen, username, password,
        output, concurrency, timeout, delay, retries, deadline, max_pages, no_robots,
        config_path, template_dir, verbose, log_file):
    """Строит карту сайта, начиная с корневого URL."""
    configure(
        level='DEBUG' if verbose else 'WARNING',
        log_file=str(log_file) if log_file else None,
    )

    if url is None and config_path is None:
        raise click.UsageError('--url argument is required', ctx=ctx)

    if authen:
        if not username:
            username = click.prompt('Username', err=True)
        if password is None:
            password = click.prompt('Password', hide_input=True, err=True)

    overrides = {
        'root_url': url,
        'max_depth': depth,
        'output_format': fmt,
        'summary_length': summary,
        'title': title,
        'email': email,
        'proxy': proxy,
        'username': username,
        'password': password,
        'concurrency': concurrency,
        'timeout': timeout,
        'delay': delay,
        'retry_times': retries,
        'deadline': deadline,
        'max_pages': max_pages,
    }
    if ctx.get_parameter_source('envproxy') is not ParameterSource.DEFAULT:
        overrides['env_proxy'] = envproxy
    if no_robots:
        overrides['respect_robots'] = False

    try:
        cfg = load_config(config_path, overrides)
    except ValidationError as e:
        if _missing_root(e):
            raise click.UsageError('--url argument is required', ctx=ctx)
        print_error(f'Ошибка загрузки конфигурации: {e}')
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')

    # open the destination before crawling so a bad path fails fast
    if output is not None:
        try:
            out = output.open('w', encoding='utf-8')
        except OSError as e:
            print_error(f'{output}: {e.strerror or e}')
    else:
        out = sys.stdout

    try:
        try:
            sitemap = asyncio.run(_crawl(cfg))
        except UrlError as e:
            print_error(f'Некорректный корневой URL: {e}')
        except Exception as e:
            print_error(f'Ошибка при обходе: {e}')

        renderer = get_renderer(cfg.output_format, cfg.page_title, template_dir=template_dir)
        try:
            renderer.render(sitemap, out)
            out.flush()
        except OSError as e:
            print_error(f'Ошибка записи результата: {e}')
    finally:
        if output is not None:
            out.close()


if __name__ == "__main__":
    cli()
