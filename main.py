import sys
import json
import logging
from typing import Callable, Dict, List, Mapping, Optional

from aggregator import AggregatorClient
from config import Settings, load_settings
from errors import SyncError
from onboarding import open_portal, register_user
from positions_sync import sync_positions
from schemas import OperationResult
from sheets import SheetsClient


logger = logging.getLogger(__name__)

USAGE = "Usage: python main.py [registerUser | openPortal | sync]"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging once for the whole process"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler()],
        force=True
    )


def _sync(settings: Settings, aggregator: AggregatorClient, sheets_factory) -> OperationResult:
    # Only the sync command needs spreadsheet credentials
    sheets = sheets_factory(settings)
    return sync_positions(settings, aggregator, sheets)


# Onboarding commands only talk to SnapTrade
ONBOARDING: Dict[str, Callable] = {
    "registerUser": register_user,
    "openPortal": open_portal,
}

COMMANDS = ("registerUser", "openPortal", "sync")


def parse_command(args: List[str]) -> Optional[str]:
    """Return the command for the CLI arguments, or None if they are invalid"""
    if not args:
        return "sync"
    if len(args) == 1 and args[0] in COMMANDS:
        return args[0]
    return None


def execute(command: str, settings: Settings, aggregator_factory: Callable,
            sheets_factory: Callable) -> OperationResult:
    try:
        aggregator = aggregator_factory(settings)
        if command == "sync":
            return _sync(settings, aggregator, sheets_factory)
        return ONBOARDING[command](settings, aggregator)
    except SyncError as e:
        logger.error(f"{command} error: {e}")
        return OperationResult.error(command, str(e))
    except Exception:
        logger.exception(f"{command} failed unexpectedly")
        return OperationResult.error(command, "unexpected error, see log")


def run(
    args: List[str],
    environ: Optional[Mapping[str, str]] = None,
    aggregator_factory: Callable = AggregatorClient.from_settings,
    sheets_factory: Callable = SheetsClient.from_settings,
) -> int:
    """
    Dispatch one CLI invocation

    Args:
        args: Arguments after the program name
        environ: Environment to load settings from, defaults to os.environ and .env
        aggregator_factory: Builds the SnapTrade client from settings
        sheets_factory: Builds the spreadsheet client from settings

    Returns:
        Process exit status
    """
    command = parse_command(args)
    if command is None:
        print(USAGE, file=sys.stderr)
        return EXIT_USAGE

    try:
        settings = load_settings(environ)
    except SyncError as e:
        setup_logging()
        logger.error(f"{command} error: {e}")
        result = OperationResult.error(command, str(e))
    else:
        setup_logging(settings.log_level)
        result = execute(command, settings, aggregator_factory, sheets_factory)

    print(json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2, ensure_ascii=False))
    return EXIT_OK if result.ok else EXIT_FAILED


def cli() -> None:
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    cli()
