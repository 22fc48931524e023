"""
Crisis Alerts & Platform Actions

Builds the crisis alert shown to the user and performs the phone/SMS
actions behind it. The engine only constructs tel:/sms: URIs; opening them
is delegated to a platform ActionInvoker, and displaying the alert to an
AlertPresenter. When a platform action fails, the presenter is told the
literal number or keyword so the user can act manually.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

from crisis_engine.safety.models import InterventionResponse, RiskTier

if TYPE_CHECKING:
    from crisis_engine.safety.event_log import EventLog

logger = logging.getLogger(__name__)


# ==================================
# URIs
# ==================================

def tel_uri(number: str) -> str:
    """Telephone URI for a number."""
    return f"tel:{number}"


def sms_uri(number: str, keyword: str) -> str:
    """SMS URI with a prefilled body."""
    return f"sms:{number}?body={keyword}"


# ==================================
# Collaborator Protocols
# ==================================

class ActionInvoker(Protocol):
    """Platform URL opener (dialer, messaging app)."""

    async def can_open(self, uri: str) -> bool:
        ...

    async def open(self, uri: str) -> None:
        ...


class AlertPresenter(Protocol):
    """UI collaborator that displays alerts."""

    async def present(self, alert: "CrisisAlert") -> str:
        """Show the alert and return the token of the option chosen."""
        ...

    async def notify(self, title: str, message: str) -> None:
        """Show an informational message."""
        ...


class HeadlessActionInvoker:
    """
    Invoker for server deployments with no dialer.

    Every URI is reported as unopenable, so platform actions fall back to
    showing the number. Clients that place the call themselves report it
    through CrisisService.report_action instead.
    """

    async def can_open(self, uri: str) -> bool:
        return False

    async def open(self, uri: str) -> None:
        raise PlatformActionError("No platform dialer available", uri=uri)


# ==================================
# Alert Content
# ==================================

class AlertToken:
    """Action tokens an alert can resolve to."""
    CALL_988 = "call_988"
    TEXT_CRISIS = "text_crisis"
    CALL_911 = "call_911"
    SAFE_FOR_NOW = "safe_for_now"
    GET_SUPPORT = "get_support"
    CONTINUE_CHAT = "continue_chat"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class AlertOption:
    token: str
    label: str
    style: str = "default"  # default, destructive, cancel


@dataclass(frozen=True)
class CrisisAlert:
    title: str
    message: str
    options: tuple[AlertOption, ...]
    cancelable: bool = True

    @property
    def tokens(self) -> list[str]:
        return [option.token for option in self.options]


URGENT_ALERT_OPTIONS = (
    AlertOption(AlertToken.CALL_988, "Call 988 Now"),
    AlertOption(AlertToken.TEXT_CRISIS, "Text Crisis Line"),
    AlertOption(AlertToken.CALL_911, "Emergency 911", style="destructive"),
    AlertOption(AlertToken.SAFE_FOR_NOW, "I'm Safe For Now", style="cancel"),
)

SUPPORT_ALERT_OPTIONS = (
    AlertOption(AlertToken.GET_SUPPORT, "Get Support"),
    AlertOption(AlertToken.CONTINUE_CHAT, "Continue Talking"),
    AlertOption(AlertToken.DISMISS, "Not Right Now", style="cancel"),
)


def build_crisis_alert(response: InterventionResponse) -> CrisisAlert:
    """Alert content for an intervention response."""
    if response.tier in (RiskTier.CRITICAL, RiskTier.HIGH):
        return CrisisAlert(
            title="Emergency Support Available",
            message=response.message,
            options=URGENT_ALERT_OPTIONS,
            cancelable=False,
        )
    return CrisisAlert(
        title="Support Available",
        message=response.message,
        options=SUPPORT_ALERT_OPTIONS,
    )


# ==================================
# Platform Actions
# ==================================

class PlatformActionError(Exception):
    """Raised when the platform cannot perform a call or text."""

    def __init__(self, message: str, uri: str):
        super().__init__(message)
        self.uri = uri


@dataclass
class PlatformActionResult:
    """Outcome of a call/text attempt."""

    action_type: str
    target: str
    uri: str
    success: bool
    error: Optional[PlatformActionError] = None
    fallback_title: str = ""
    fallback_message: str = ""
    details: dict = field(default_factory=dict)


class PlatformActions:
    """
    Performs emergency calls and crisis texts through the platform invoker.

    Every attempt is recorded in the event log as an EmergencyAction with
    its success flag. Failures never raise; the user is shown how to reach
    the line manually instead.
    """

    def __init__(
        self,
        invoker: ActionInvoker,
        event_log: "EventLog",
        presenter: Optional[AlertPresenter] = None,
    ):
        self.invoker = invoker
        self.event_log = event_log
        self.presenter = presenter

    async def make_emergency_call(self, number: str) -> PlatformActionResult:
        """Open the dialer for a number."""
        return await self._perform(
            action_type="call",
            target=number,
            uri=tel_uri(number),
            unavailable=(
                "Unable to Make Call",
                f"Your device cannot make phone calls. Please dial {number} manually "
                f"for immediate assistance.",
            ),
            failed=(
                "Call Error",
                f"Unable to place call. Please dial {number} manually for immediate assistance.",
            ),
        )

    async def send_crisis_text(self, number: str, keyword: str) -> PlatformActionResult:
        """Open the messaging app with the crisis keyword prefilled."""
        return await self._perform(
            action_type="text",
            target=number,
            uri=sms_uri(number, keyword),
            unavailable=(
                "Unable to Send Text",
                f"Your device cannot send text messages. Please text {keyword} to {number} manually.",
            ),
            failed=(
                "Text Error",
                f"Unable to open messaging. Please text {keyword} to {number} manually.",
            ),
        )

    async def _perform(
        self,
        action_type: str,
        target: str,
        uri: str,
        unavailable: tuple[str, str],
        failed: tuple[str, str],
    ) -> PlatformActionResult:
        try:
            if not await self.invoker.can_open(uri):
                error = PlatformActionError(f"Platform cannot open {uri}", uri=uri)
                return await self._fail(action_type, target, uri, error, *unavailable)
            await self.invoker.open(uri)
        except PlatformActionError as e:
            return await self._fail(action_type, target, uri, e, *failed)
        except Exception as e:
            logger.exception(f"Platform action {action_type} failed: {e}")
            error = PlatformActionError(str(e), uri=uri)
            return await self._fail(action_type, target, uri, error, *failed)

        await self.event_log.log_emergency_action(action_type, target, successful=True)
        logger.info(f"Emergency action opened: type={action_type}")
        return PlatformActionResult(action_type=action_type, target=target, uri=uri, success=True)

    async def _fail(
        self,
        action_type: str,
        target: str,
        uri: str,
        error: PlatformActionError,
        title: str,
        message: str,
    ) -> PlatformActionResult:
        logger.warning(f"Emergency action unavailable: type={action_type}, reason={error}")
        await self.event_log.log_emergency_action(action_type, target, successful=False)

        if self.presenter is not None:
            try:
                await self.presenter.notify(title, message)
            except Exception as e:
                # The fallback text is still returned to the caller
                logger.exception(f"Could not show fallback for {action_type}: {e}")

        return PlatformActionResult(
            action_type=action_type,
            target=target,
            uri=uri,
            success=False,
            error=error,
            fallback_title=title,
            fallback_message=message,
        )
