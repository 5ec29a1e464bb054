"""
Command-line interface for the subscription catalog.

Runs syncs, scans, and catalog queries against the JSON snapshot.
Every command prints a CLIOutput document on stdout.
"""

import asyncio
import json
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from subscription_catalog.config import get_settings
from subscription_catalog.logger import get_logger, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__, component="cli")


class CLIOutput(BaseModel):
    """Structured output for CLI commands."""

    success: bool
    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | list[Any] | None = None
    error: str | None = None


def print_json(output: CLIOutput) -> None:
    """Print output as formatted JSON."""
    print(json.dumps(output.model_dump(), indent=2, default=str))


def _option(args: list[str], name: str, default: str | None = None) -> str | None:
    """Value following a --flag, or the default."""
    if name in args:
        idx = args.index(name)
        if idx + 1 < len(args):
            return args[idx + 1]
    return default


def _positional(args: list[str], what: str) -> str:
    if len(args) < 3 or args[2].startswith("--"):
        raise UsageError(f"{what} required")
    return args[2]


def _parse_date(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _limit(args: list[str], default: int | None) -> int | None:
    value = _option(args, "--limit")
    return int(value) if value is not None else default


class UsageError(Exception):
    """Bad command-line arguments."""


def cmd_test_config() -> None:
    """Test configuration loading."""
    settings = get_settings()

    output = CLIOutput(
        success=True,
        command="test-config",
        data={
            "environment": settings.environment,
            "snapshot_path": str(settings.store.snapshot_path),
            "xbox_market": settings.xbox.market,
            "psn_locale": f"{settings.playstation.language}-{settings.playstation.country}",
            "psn_query_hash_configured": bool(settings.playstation.persisted_query_hash),
            "ubisoft_search_url": settings.ubisoft.search_url,
            "igdb_configured": settings.igdb.has_credentials,
            "warning_window_days": settings.sync.warning_window_days,
        },
    )
    print_json(output)


def cmd_seed() -> None:
    """Seed the supported subscriptions."""
    from subscription_catalog.catalog import SubscriptionDirectory
    from subscription_catalog.storage import CatalogSnapshot

    snapshot = CatalogSnapshot()
    store = snapshot.load()
    result = SubscriptionDirectory(store).seed()
    snapshot.save(store)

    print_json(CLIOutput(success=True, command="seed", data=asdict(result)))


async def cmd_sync(provider_name: str, args: list[str]) -> None:
    """Sync one provider into the snapshot."""
    from subscription_catalog import jobs
    from subscription_catalog.context import SyncContext
    from subscription_catalog.ingestion.orchestrator import SyncStatus
    from subscription_catalog.storage import CatalogSnapshot

    handlers = {
        "gamepass": jobs.sync_gamepass,
        "eaplay": jobs.sync_eaplay,
        "psplus": jobs.sync_psplus,
        "ubisoftplus": jobs.sync_ubisoftplus,
    }
    if provider_name not in handlers:
        raise UsageError(f"Unknown provider '{provider_name}'. Use one of: {', '.join(handlers)}")

    kwargs: dict[str, Any] = {"limit": _limit(args, None)}
    if provider_name == "psplus":
        kwargs["include_classics"] = "--no-classics" not in args
    if provider_name == "ubisoftplus":
        kwargs["use_fallback"] = "--fallback" in args

    snapshot = CatalogSnapshot()
    ctx = SyncContext(store=snapshot.load())

    logger.info("Syncing provider", provider=provider_name, **kwargs)
    result = await handlers[provider_name](ctx, **kwargs)
    snapshot.save(ctx.store)

    print_json(
        CLIOutput(
            success=result.status in (SyncStatus.SUCCESS, SyncStatus.PARTIAL),
            command="sync",
            data=result.to_dict(),
            error=result.message,
        )
    )


async def cmd_scan_expiry() -> None:
    """Flag entries entering the leaving window."""
    from subscription_catalog.context import SyncContext
    from subscription_catalog.jobs import check_leaving_soon
    from subscription_catalog.storage import CatalogSnapshot

    snapshot = CatalogSnapshot()
    ctx = SyncContext(store=snapshot.load())
    result = await check_leaving_soon(ctx)
    snapshot.save(ctx.store)

    print_json(CLIOutput(success=True, command="scan-expiry", data=asdict(result)))


def cmd_query(command: str, args: list[str]) -> None:
    """Read-only catalog queries."""
    from subscription_catalog.catalog import AvailabilityQueryEngine
    from subscription_catalog.storage import CatalogSnapshot

    engine = AvailabilityQueryEngine(CatalogSnapshot().load())
    user_id = _option(args, "--user")
    data: dict[str, Any] | list[Any]

    if command == "check":
        game_id = _positional(args, "game_id")
        game = engine.get_game(game_id)
        data = {
            "game": game.model_dump(mode="json") if game else None,
            **engine.check_availability(game_id, user_id=user_id).to_dict(),
        }
    elif command == "leaving-soon":
        listings = engine.leaving_soon(user_id=user_id, limit=_limit(args, 10) or 10)
        data = [listing.to_dict() for listing in listings]
    elif command == "coming-soon":
        listings = engine.coming_soon(user_id=user_id, limit=_limit(args, 10) or 10)
        data = [listing.to_dict() for listing in listings]
    elif command == "count":
        user_id = _positional(args, "user_id")
        data = {"user_id": user_id, "available_games": engine.count_available_games(user_id)}
    elif command == "search":
        query = _positional(args, "query")
        games = engine.search_games(query, limit=_limit(args, 20) or 20)
        data = [g.model_dump(mode="json") for g in games]
    elif command == "recent":
        data = [g.model_dump(mode="json") for g in engine.recently_added(_limit(args, 20) or 20)]
    else:
        data = engine.site_stats().to_dict()

    print_json(CLIOutput(success=True, command=command, data=data))


def cmd_admin(command: str, args: list[str]) -> None:
    """Administrative overrides and user subscription changes."""
    from subscription_catalog.catalog import (
        CatalogReconciler,
        EntityResolver,
        SubscriptionDirectory,
    )
    from subscription_catalog.storage import CatalogSnapshot

    snapshot = CatalogSnapshot()
    store = snapshot.load()
    reconciler = CatalogReconciler(store)
    subscription = _option(args, "--subscription")
    data: dict[str, Any]

    if command == "mark-leaving":
        title = _positional(args, "title")
        updated = reconciler.mark_leaving_soon(
            title,
            leaving_date=_parse_date(_option(args, "--date")),
            subscription_slug=subscription,
        )
        data = {"title": title, "updated": updated}
    elif command == "mark-coming":
        title = _positional(args, "title")
        updated = reconciler.mark_coming_soon(
            title,
            available_date=_parse_date(_option(args, "--date")),
            subscription_slug=subscription,
        )
        data = {"title": title, "updated": updated}
    elif command == "reset-status":
        data = {"reset": reconciler.reset_transitional_statuses(subscription_slug=subscription)}
    elif command == "merge":
        if len(args) < 4:
            raise UsageError("keep_id and duplicate_id required")
        data = asdict(EntityResolver(store).merge_games(args[2], args[3]))
    elif command == "subscribe":
        if len(args) < 5:
            raise UsageError("user_id, subscription and tier required")
        directory = SubscriptionDirectory(store)
        held = directory.add_user_subscription(args[2], args[3], args[4])
        data = held.model_dump(mode="json")
    else:
        if len(args) < 4:
            raise UsageError("user_id and subscription required")
        removed = SubscriptionDirectory(store).remove_user_subscription(args[2], args[3])
        data = {"removed": removed}

    snapshot.save(store)
    print_json(CLIOutput(success=True, command=command, data=data))


def cmd_jobs() -> None:
    """List scheduled jobs and their next run."""
    from subscription_catalog.jobs import JOBS

    now = datetime.now(timezone.utc)
    data = [
        {
            "name": job.name,
            "description": job.description,
            "cadence": job.cadence,
            "at_utc": job.at.strftime("%H:%M"),
            "next_run": job.next_run(now).isoformat(),
        }
        for job in JOBS.values()
    ]
    print_json(CLIOutput(success=True, command="jobs", data=data))


def print_usage() -> None:
    """Print CLI usage information."""
    usage = """
Subscription Catalog CLI
========================

Usage: subscription-catalog <command> [arguments]

Commands:
  test-config                         Test configuration loading
  seed                                Seed the supported subscriptions
  sync <provider>                     Sync gamepass, eaplay, psplus or ubisoftplus
  scan-expiry                         Flag entries entering the leaving window
  check <game_id>                     Availability of one game
  leaving-soon                        Entries leaving soon
  coming-soon                         Entries coming soon
  count <user_id>                     Games available to a user
  search <query>                      Fuzzy title search
  recent                              Recently added games
  stats                               Catalog totals
  mark-leaving <title>                Mark matching entries as leaving soon
  mark-coming <title>                 Mark matching entries as coming soon
  reset-status                        Return transitional entries to available
  merge <keep_id> <duplicate_id>      Merge two duplicate games
  subscribe <user> <sub> <tier>       Record a held subscription
  unsubscribe <user> <sub>            Remove a held subscription
  jobs                                List scheduled jobs

Options:
  --limit <n>                 Item cap for sync and listings
  --user <user_id>            Answer from a user's point of view
  --date <YYYY-MM-DD>         Leaving/available date for overrides
  --subscription <slug>       Restrict overrides to one subscription
  --fallback                  Ubisoft+: use the static title list
  --no-classics               PS Plus: skip the Classics catalog

Examples:
  subscription-catalog sync psplus --limit 200 --no-classics
  subscription-catalog check 6f1c... --user user-1
"""
    print(usage)


QUERY_COMMANDS = ("check", "leaving-soon", "coming-soon", "count", "search", "recent", "stats")
ADMIN_COMMANDS = (
    "mark-leaving",
    "mark-coming",
    "reset-status",
    "merge",
    "subscribe",
    "unsubscribe",
)


def main() -> None:
    """Main CLI entry point."""
    args = sys.argv
    if len(args) < 2:
        print_usage()
        sys.exit(1)

    command = args[1]

    try:
        if command == "test-config":
            cmd_test_config()

        elif command == "seed":
            cmd_seed()

        elif command == "sync":
            asyncio.run(cmd_sync(_positional(args, "provider"), args))

        elif command == "scan-expiry":
            asyncio.run(cmd_scan_expiry())

        elif command in QUERY_COMMANDS:
            cmd_query(command, args)

        elif command in ADMIN_COMMANDS:
            cmd_admin(command, args)

        elif command == "jobs":
            cmd_jobs()

        elif command in ("help", "--help", "-h"):
            print_usage()

        else:
            print(f"Unknown command: {command}")
            print_usage()
            sys.exit(1)

    except UsageError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error", error=str(e))
        output = CLIOutput(
            success=False,
            command=command,
            error=str(e),
        )
        print_json(output)
        sys.exit(1)


if __name__ == "__main__":
    main()
