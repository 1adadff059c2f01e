"""
Email OTP challenges for address verification before registration.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

import httpx

from pointsbank import config
from pointsbank.logging_config import get_logger

logger = get_logger("pointsbank.otp")


class EmailDeliveryError(Exception):
    pass


@dataclass
class OtpChallenge:
    code: str
    created_at: datetime
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 3


class OtpManager:
    def __init__(self, ttl_seconds: int = None, reuse_seconds: int = None, max_attempts: int = None) -> None:
        self.ttl = config.OTP_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.reuse_ttl = self.ttl if reuse_seconds is None else reuse_seconds
        self.max_attempts = config.OTP_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self._challenges: Dict[str, OtpChallenge] = {}
        self._recent_success: Dict[str, datetime] = {}

    @staticmethod
    def _key(email: str) -> str:
        return (email or "").strip().lower()

    def _is_expired(self, challenge: OtpChallenge) -> bool:
        return datetime.utcnow() > challenge.expires_at

    def get_pending(self, email: str) -> Optional[OtpChallenge]:
        key = self._key(email)
        challenge = self._challenges.get(key)
        if not challenge:
            return None
        if self._is_expired(challenge):
            self._challenges.pop(key, None)
            return None
        return challenge

    def clear(self, email: str) -> None:
        self._challenges.pop(self._key(email), None)

    def create_challenge(self, email: str) -> OtpChallenge:
        now = datetime.utcnow()
        challenge = OtpChallenge(
            code=f"{secrets.randbelow(900000) + 100000}",
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl),
            max_attempts=self.max_attempts,
        )
        self._challenges[self._key(email)] = challenge
        return challenge

    def verify_code(self, email: str, code: str) -> bool:
        challenge = self.get_pending(email)
        if not challenge:
            return False

        challenge.attempts += 1
        if challenge.attempts > challenge.max_attempts:
            self.clear(email)
            return False

        if secrets.compare_digest(challenge.code, (code or "").strip()):
            self.clear(email)
            self._recent_success[self._key(email)] = datetime.utcnow()
            return True

        return False

    def is_recently_verified(self, email: str) -> bool:
        key = self._key(email)
        ts = self._recent_success.get(key)
        if not ts:
            return False
        if datetime.utcnow() - ts > timedelta(seconds=self.reuse_ttl):
            self._recent_success.pop(key, None)
            return False
        return True

    def clear_recent(self, email: str) -> None:
        self._recent_success.pop(self._key(email), None)


class LogEmailProvider:
    """
    Development provider: records the message in the service log instead of sending it.
    """

    async def send(self, to: str, subject: str, text: str) -> None:
        logger.info("[MOCK EMAIL] to=%s subject=%s", to, subject)
        # Bodies carry one-time codes; only surfaced when LOG_LEVEL=DEBUG
        logger.debug("[MOCK EMAIL] body=%s", text)


class HttpEmailProvider:
    """
    Posts messages to a JSON email API (``{"from", "to", "subject", "text"}``).
    """

    def __init__(self, api_url: str, api_key: str = "", sender: str = None, timeout: float = None, transport=None):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender or config.MAIL_SENDER
        self.timeout = config.MAIL_REQUEST_TIMEOUT if timeout is None else timeout
        self.transport = transport

    async def send(self, to: str, subject: str, text: str) -> None:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {"from": self.sender, "to": to, "subject": subject, "text": text}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.exception("Email API unreachable: %s", e)
            raise EmailDeliveryError("Email service unreachable") from e
        logger.info("Email API POST %s -> %s", self.api_url, resp.status_code)
        if resp.status_code >= 400:
            raise EmailDeliveryError(f"Email service error: {resp.status_code}")


def build_email_provider():
    if config.MAIL_API_URL:
        return HttpEmailProvider(config.MAIL_API_URL, config.MAIL_API_KEY)
    return LogEmailProvider()
