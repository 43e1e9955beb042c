import logging

from aggregator import AggregatorClient
from config import Settings
from errors import SyncError
from schemas import OperationResult


logger = logging.getLogger(__name__)


def register_user(settings: Settings, aggregator: AggregatorClient) -> OperationResult:
    """
    One-time registration of the configured user with SnapTrade

    Returns:
        OperationResult carrying the user secret to store as SNAPTRADE_USER_SECRET
    """
    command = "registerUser"
    try:
        settings.require("user_id")
        secret = aggregator.register_user(settings.user_id)
    except SyncError as e:
        logger.error(f"registerUser error: {e}")
        return OperationResult.error(command, str(e))

    logger.info(f"Got userSecret for {settings.user_id}: {secret}")
    return OperationResult(
        command=command,
        status="success",
        user_secret=secret,
        message="Store this value as SNAPTRADE_USER_SECRET",
    )


def open_portal(settings: Settings, aggregator: AggregatorClient) -> OperationResult:
    """
    Request the connection portal URL used to link the configured broker

    Returns:
        OperationResult carrying the portal URL to open in a browser
    """
    command = "openPortal"
    try:
        settings.require("user_id", "user_secret", "broker")
        url = aggregator.login_url(
            settings.user_id,
            settings.user_secret,
            broker=settings.broker,
            immediate_redirect=False,
        )
    except SyncError as e:
        logger.error(f"openPortal error: {e}")
        return OperationResult.error(command, str(e))

    logger.info(f"Connection Portal URL for {settings.broker}:\n{url}")
    return OperationResult(
        command=command,
        status="success",
        redirect_uri=url,
        message=f"Open this URL to link your {settings.broker} account",
    )
