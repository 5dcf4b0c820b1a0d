"""Run one sync from the command line.

    python -m moments_sync            # full sync (pull then push)
    python -m moments_sync --quick    # push only
"""

import argparse
import asyncio
import logging
import sys

from moments_sync.auth import StaticAuth
from moments_sync.config import get_settings
from moments_sync.database import create_session_factory, create_sqlite_engine, init_local_db
from moments_sync.errors import SyncFailedError
from moments_sync.logging_config import configure_logging
from moments_sync.remote import RemoteClient
from moments_sync.repository import LocalStore
from moments_sync.state import SyncStateStore
from moments_sync.sync import SyncEngine

logger = logging.getLogger("moments_sync")


async def run(quick: bool) -> int:
    settings = get_settings()
    engine = create_sqlite_engine(settings.local_database_url)
    init_local_db(engine)
    store = LocalStore(create_session_factory(engine)())
    state = SyncStateStore.from_url(settings.sync_state_database_url)
    auth = StaticAuth(user_id=settings.user_id, access_token=settings.access_token or None)

    try:
        async with RemoteClient(auth, settings=settings) as remote:
            sync = SyncEngine(remote, store, state, settings)
            report = await (sync.quick_sync() if quick else sync.full_sync())
    except SyncFailedError as e:
        logger.error(str(e))
        return 1
    finally:
        store.close()
        state.close()

    if report is None:
        logger.warning("Sync skipped (not authenticated)")
        return 2
    return 0 if report.ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="moments_sync", description="Sync local data with the backend"
    )
    parser.add_argument("--quick", action="store_true", help="push local changes only")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, settings.log_format)
    return asyncio.run(run(args.quick))


if __name__ == "__main__":
    sys.exit(main())
