#!/usr/bin/env python3
"""
Dog walk report CLI.

Usage:
    python -m dogreport.run                                  # report new walks to stdout
    python -m dogreport.run --output walks.html              # write to a file instead
    python -m dogreport.run --username me@x.com --password pw  # store credentials, then report
    python -m dogreport.run --dry-run                        # report without marking walks reported

Environment variables:
    DOGREPORT_SETTINGS_PATH: settings file (default: ~/.dogreport.sqlite)
    DOGREPORT_FIREBASE_URL, DOGREPORT_LOGIN_URL: backend endpoints
    DOGREPORT_USER_AGENT, DOGREPORT_TIMEOUT_S: HTTP client settings
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from dogreport.config import DogReportConfig, load_config_from_env
from dogreport.dedup import filter_pending, resolve_walkers
from dogreport.render import render_report
from dogreport.session import Credentials, PersistenceError, SessionStore
from wagapi.client import WagClient
from wagapi.errors import AuthError, FetchError

logger = logging.getLogger(__name__)


def authenticate(
    http: httpx.Client,
    store: SessionStore,
    credentials: Credentials,
    cfg: DogReportConfig,
) -> WagClient:
    """
    Build a client from the stored token, logging in again if it is unusable.

    A freshly issued token is saved straight away, independently of the
    reported walks.

    Raises:
        AuthError: if neither the token nor the username/password work
    """
    if credentials.token:
        try:
            return WagClient.with_token(http, credentials.token, firebase_url=cfg.firebase_url)
        except AuthError as e:
            logger.info("Stored token is unusable (%s); logging in again", e)

    if not credentials.username or not credentials.password:
        raise AuthError("No usable token and no stored username/password (use --username/--password)")

    client = WagClient.with_password(
        http,
        credentials.username,
        credentials.password,
        login_url=cfg.login_url,
        firebase_url=cfg.firebase_url,
    )
    store.save_credentials(replace(credentials, token=client.token))
    logger.info("Logged in as %s; token saved", credentials.username)
    return client


def run_once(
    source: WagClient,
    store: SessionStore,
    write: Callable[[str], None],
    persist: bool = True,
) -> Optional[str]:
    """
    Report every walk not reported before, then remember them.

    The reported set is saved only after the report has been rendered and
    written. Any failure before that leaves the settings file untouched, so
    the same walks are picked up again next run.

    Returns:
        The HTML written, or None when there was nothing new
    """
    reported = store.load()
    all_walks = source.fetch_past_walks()

    result = filter_pending(all_walks, reported)
    if not result.has_pending:
        logger.info("Nothing new to report")
        return None

    walkers = resolve_walkers(source, result.needed_walker_ids)
    html = render_report(result.pending, walkers)
    if html is None:
        return None
    write(html)

    if persist:
        store.save(result.reported)
        logger.info("Marked %d walks as reported", len(result.pending))
    else:
        logger.info("Dry run: %d walks left unmarked", len(result.pending))
    return html


def output_writer(output: Optional[str]) -> Callable[[str], None]:
    if not output:
        def write_stdout(html: str) -> None:
            sys.stdout.write(html + "\n")
            sys.stdout.flush()
        return write_stdout

    def write_file(html: str) -> None:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        logger.info("Report written to %s", path)
    return write_file


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[dogreport] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request URL at INFO, including the auth query parameter.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for report generation.

    Returns:
        Exit code (0 for success, including "nothing new"; 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Print an HTML report of dog walks not reported before",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--settings", type=str, help="Settings file (default: $DOGREPORT_SETTINGS_PATH or ~/.dogreport.sqlite)")
    parser.add_argument("--output", type=str, help="Write the report to this file instead of stdout")
    parser.add_argument("--username", type=str, help="Store this account email before running")
    parser.add_argument("--password", type=str, help="Store this account password before running")
    parser.add_argument("--dry-run", action="store_true", help="Do not mark reported walks as reported")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cfg = load_config_from_env()
    except RuntimeError as e:
        print(f"[dogreport] ERROR: {e}", file=sys.stderr)
        return 1
    if args.settings:
        cfg.settings_path = os.path.expanduser(args.settings)

    try:
        store = SessionStore(cfg.settings_path)
        credentials = store.load_credentials()
        if args.username or args.password:
            credentials = Credentials(
                username=args.username or credentials.username,
                password=args.password or credentials.password,
                token="",
            )
            store.save_credentials(credentials)

        headers = {"User-Agent": cfg.user_agent}
        with httpx.Client(timeout=cfg.timeout_s, headers=headers) as http:
            client = authenticate(http, store, credentials, cfg)
            run_once(client, store, output_writer(args.output), persist=not args.dry_run)
        return 0

    except (AuthError, FetchError, PersistenceError) as e:
        print(f"[dogreport] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"[dogreport] ERROR: cannot write report: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
