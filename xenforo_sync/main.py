from __future__ import annotations

import asyncio
import dataclasses
import sys
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError
from rich import print as rich_print
from rich.prompt import Prompt
from rich.table import Table

from xenforo_sync import __version__
from xenforo_sync.clients import HttpClient, RateLimiter
from xenforo_sync.config import Settings, load_settings
from xenforo_sync.data_structures import JobStatus, JobType, LocalId, MediaTypeFilter, SyncStats
from xenforo_sync.database import Database
from xenforo_sync.exceptions import XFSyncError
from xenforo_sync.models.validators import to_yarl_url
from xenforo_sync.sync import JobReporter, MultiProgress, RichProgress, XenforoCrawler, reporting
from xenforo_sync.utils.logger import catch_exceptions, log, log_spacer, setup_logging
from xenforo_sync.utils.utilities import file_exists

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from yarl import URL

    from xenforo_sync.sync import ProgressSink

    _Command = Callable[["_Context", Namespace], Awaitable[None]]


class ExitCode(IntEnum):
    OK = 0
    ERROR = 1


@dataclasses.dataclass(slots=True)
class _Context:
    settings: Settings
    database: Database
    client: HttpClient
    crawler: XenforoCrawler

    async def run_job(
        self,
        job_type: JobType,
        description: str,
        operation: Callable[[ProgressSink], Awaitable[object]],
        **job_fields,
    ) -> object:
        """Runs `operation` as a persisted job, with a progress bar on the console"""
        reporter = await JobReporter.create(self.database.jobs, job_type, entity_name=description, **job_fields)
        with RichProgress(description) as bar:
            result = await operation(MultiProgress(reporter, bar))
        rich_print(f"[green]Job #{reporter.job_id} completed:[/green] {reporter.job.metadata}")
        return result

    async def load_saved_cookies(self, site_url: URL) -> None:
        file = self.settings.login.cookie_file
        if file and await file_exists(file):
            await self.client.cookies.load_file(file, site_url)


def _cookie(value: str) -> tuple[str, str]:
    name, sep, cookie_value = value.partition("=")
    if not sep or not name.strip():
        raise ArgumentTypeError(f"invalid cookie '{value}', expected NAME=VALUE")
    return name.strip(), cookie_value.strip()


def make_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="xenforo-sync",
        description="Mirror forums, threads, posts and media of XenForo sites into a local database",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config-file", type=Path, default=None, help="path to the settings YAML file")
    parser.add_argument("--database", type=Path, default=None, help="override the database file")
    parser.add_argument("--debug", action="store_true", help="log debug messages")
    commands = parser.add_subparsers(dest="command", required=True)

    add_site = commands.add_parser("add-site", help="register a site")
    add_site.add_argument("url")
    add_site.add_argument("--name", default=None)

    login = commands.add_parser("login", help="log in and save the session cookies")
    login.add_argument("site_id", type=int)
    login.add_argument("--username", "-u", default=None)
    login.add_argument("--password", "-p", default=None)
    login.add_argument("--adapter", default=None, help="login flow to use (default from settings)")
    login.add_argument("--from-cookies", type=Path, default=None, help="use a cookies.json exported from a browser")

    sync_forums = commands.add_parser("sync-forums", help="sync the forum list of a site")
    sync_forums.add_argument("site_id", type=int)

    sync_threads = commands.add_parser("sync-threads", help="sync every thread of a forum")
    sync_threads.add_argument("site_id", type=int)
    sync_threads.add_argument("forum_id", type=int)

    sync_site = commands.add_parser("sync-site", help="sync every forum of a site and their threads")
    sync_site.add_argument("site_id", type=int)

    sync_posts = commands.add_parser("sync-posts", help="sync every post of a thread")
    sync_posts.add_argument("site_id", type=int)
    sync_posts.add_argument("thread", help="local thread id or the site's thread id")

    download = commands.add_parser("download", help="download the media of a thread")
    download.add_argument("site_id", type=int)
    download.add_argument("thread", help="local thread id or the site's thread id")
    download.add_argument(
        "--type",
        dest="media_type",
        choices=[member.name.lower() for member in MediaTypeFilter],
        default="all",
    )

    for subparser in (sync_posts, download):
        subparser.add_argument(
            "--cookie", dest="cookies", type=_cookie, action="append", default=[], help="extra cookie NAME=VALUE"
        )

    jobs = commands.add_parser("jobs", help="show recent jobs")
    jobs.add_argument("--limit", type=int, default=20)
    jobs.add_argument("--status", choices=[str(status) for status in JobStatus], default=None)
    return parser


async def _add_site(ctx: _Context, args: Namespace) -> None:
    try:
        url = to_yarl_url(args.url)
    except ValidationError:
        raise XFSyncError("Invalid URL", message=f"'{args.url}' is not an absolute http(s) URL") from None
    site = await ctx.database.sites.add(str(url).rstrip("/"), args.name)
    rich_print(f"Site #{site.id}: {site.url}")


async def _login(ctx: _Context, args: Namespace) -> None:
    if args.from_cookies:
        session = await ctx.crawler.login_with_cookies(LocalId(args.site_id), args.from_cookies)
    else:
        username = args.username or Prompt.ask("Username")
        password = args.password or Prompt.ask("Password", password=True)
        adapter = args.adapter or ctx.settings.login.adapter
        session = await ctx.crawler.login(LocalId(args.site_id), username, password, adapter)

    status = "[green]logged in[/green]" if session.logged_in else "[yellow]not logged in[/yellow]"
    rich_print(f"{session.site_url.host}: {status} ({len(session.cookies)} cookies)")
    if file := ctx.settings.login.cookie_file:
        count = await ctx.client.cookies.save_file(file)
        log(f"Saved {count} cookies to {file}", 20)


async def _sync_forums(ctx: _Context, args: Namespace) -> None:
    site_id = LocalId(args.site_id)

    async def operation(progress: ProgressSink) -> SyncStats:
        async with reporting(progress):
            forums = await ctx.crawler.list_forums(site_id)
        stats = SyncStats(pages=1, total=len(forums))
        await progress.complete(stats)
        table = Table("id", "original id", "name")
        for forum in forums:
            table.add_row(str(forum.id), forum.original_id, forum.name)
        rich_print(table)
        return stats

    await ctx.run_job(JobType.SYNC_FORUMS, f"Site #{site_id}", operation, site_id=site_id)


async def _sync_threads(ctx: _Context, args: Namespace) -> None:
    site_id, forum_id = LocalId(args.site_id), LocalId(args.forum_id)
    await ctx.run_job(
        JobType.SYNC_FORUM_THREADS,
        f"Forum #{forum_id}",
        lambda progress: ctx.crawler.sync_all_threads(site_id, forum_id, progress),
        site_id=site_id,
        forum_id=forum_id,
    )


async def _sync_site(ctx: _Context, args: Namespace) -> None:
    site_id = LocalId(args.site_id)
    await ctx.run_job(
        JobType.SYNC_ALL_FORUMS_AND_THREADS,
        f"Site #{site_id}",
        lambda progress: ctx.crawler.sync_all_forums_and_threads(site_id, progress),
        site_id=site_id,
    )


async def _sync_posts(ctx: _Context, args: Namespace) -> None:
    site_id = LocalId(args.site_id)
    thread = await ctx.crawler.get_thread(site_id, args.thread)
    await ctx.load_saved_cookies(await ctx.crawler.site_url(site_id))
    await ctx.run_job(
        JobType.SYNC_THREAD_POSTS,
        thread.name,
        lambda progress: ctx.crawler.sync_all_thread_posts(site_id, thread.id, dict(args.cookies), progress),
        site_id=site_id,
        thread_id=thread.id,
    )


async def _download(ctx: _Context, args: Namespace) -> None:
    site_id = LocalId(args.site_id)
    thread = await ctx.crawler.get_thread(site_id, args.thread)
    media_type = MediaTypeFilter[args.media_type.upper()]
    await ctx.load_saved_cookies(await ctx.crawler.site_url(site_id))
    await ctx.run_job(
        JobType.DOWNLOAD_THREAD_MEDIA,
        thread.name,
        lambda progress: ctx.crawler.download_thread_media(
            site_id, thread.id, media_type, dict(args.cookies), progress
        ),
        site_id=site_id,
        thread_id=thread.id,
        metadata={"media_type": media_type.name.lower()},
    )


async def _jobs(ctx: _Context, args: Namespace) -> None:
    status = JobStatus(args.status) if args.status else None
    table = Table()
    for column in ("id", "type", "status", "progress", "entity", "step"):
        table.add_column(column, no_wrap=True)
    table.add_column("error", overflow="fold")
    for job in await ctx.database.jobs.recent(args.limit, status):
        table.add_row(
            str(job.id),
            str(job.job_type),
            str(job.status),
            f"{job.progress}%",
            job.entity_name or "",
            job.current_step or "",
            job.error_message or "",
        )
    rich_print(table)


COMMANDS: dict[str, _Command] = {
    "add-site": _add_site,
    "login": _login,
    "sync-forums": _sync_forums,
    "sync-threads": _sync_threads,
    "sync-site": _sync_site,
    "sync-posts": _sync_posts,
    "download": _download,
    "jobs": _jobs,
}


async def _run_command(settings: Settings, args: Namespace) -> int:
    rate_limiter = RateLimiter(settings.rate_limiting, settings.http)
    async with (
        Database(settings.database.path) as database,
        HttpClient(settings.http, rate_limiter=rate_limiter) as client,
    ):
        crawler = XenforoCrawler(database, client, downloads=settings.downloads)
        ctx = _Context(settings, database, client, crawler)
        await COMMANDS[args.command](ctx, args)
    return ExitCode.OK


def main(args: Sequence[str] | None = None) -> None:
    sys.exit(run(args))


def run(args: Sequence[str] | None = None) -> str | int | None:
    @catch_exceptions
    def run_() -> int:
        parsed = make_parser().parse_args(args)
        settings = load_settings(parsed.config_file)
        if parsed.database:
            settings.database.path = parsed.database
        level = 10 if parsed.debug else settings.logging.level
        setup_logging(level, settings.logging.file)
        log_spacer(10)
        log(f"xenforo-sync {__version__}: {parsed.command}", 10)
        return asyncio.run(_run_command(settings, parsed))

    return run_()


if __name__ == "__main__":
    main()
