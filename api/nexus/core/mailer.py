"""
Outbound email stand-in.

No mail transport is wired up: each message is written to the structured
log instead. Secrets (codes, tokens) are only included outside production.
"""
import structlog

from nexus.core.config import settings

logger = structlog.get_logger(__name__)


def _dispatch(template: str, to: str, **context: str) -> None:
    if settings.is_production:
        context = {key: "***" for key in context}
    logger.info("email.outbound", template=template, to=to, **context)


def send_verification_code(email: str, code: str) -> None:
    _dispatch("verify_email", email, code=code)


def send_password_reset(email: str, token: str) -> None:
    _dispatch("password_reset", email, token=token)


def send_workspace_invite(email: str, token: str, workspace_name: str) -> None:
    _dispatch("workspace_invite", email, token=token, workspace=workspace_name)
