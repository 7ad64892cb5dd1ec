import logging
import time
from typing import Callable, Optional
import requests
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from tdone.config.models import RescanConfig
from tdone.domain.models import RescanRequest


def mask_token(token: str) -> str:
    if len(token) <= 6:
        return "***"
    return f"{token[:3]}...{token[-3:]}"


class PlexClient:
    """Minimal Plex Media Server client: connection check and section refresh.

    Refreshing a section is idempotent, so it is the one call that is retried
    (fixed delay, bounded attempts). No response body is parsed; only HTTP
    success matters.
    """

    def __init__(
        self,
        server: str,
        token: str,
        rescan: Optional[RescanConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.server = server.rstrip("/")
        self.token = token
        self.rescan = rescan or RescanConfig()
        self.session = session or requests.Session()
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def _get(self, endpoint: str) -> requests.Response:
        response = self.session.get(
            f"{self.server}{endpoint}",
            headers={"X-Plex-Token": self.token},
            timeout=self.rescan.timeout_seconds,
        )
        response.raise_for_status()
        return response

    def section_for(self, category: str) -> Optional[int]:
        return self.rescan.sections.get(category)

    def verify_connection(self) -> bool:
        """Single GET /identity; no retry."""
        self.logger.info(f"Verifying Plex connection on {self.server}...")
        try:
            self._get("/identity")
        except requests.RequestException as exc:
            self.logger.error("Error: Cannot connect to Plex server")
            self.logger.error(f"Server: {self.server}")
            self.logger.error(f"Token: {mask_token(self.token)}")
            self.logger.error(f"Response: {exc}")
            return False
        self.logger.info("Plex connection verified")
        return True

    def _log_retry(self, request: RescanRequest, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            f"Plex request failed (attempt {retry_state.attempt_number}/{self.rescan.attempts}) "
            f"for section {request.section_id}: {exc}"
        )
        self.logger.info(f"Retrying in {self.rescan.delay_seconds:g} seconds...")

    def trigger_scan(self, category: str) -> bool:
        """Asks Plex to rescan the library section for category ("show" or "movie").

        Unknown categories fail immediately without a network call. Returns
        False once every attempt has failed; never raises for HTTP errors.
        """
        section_id = self.section_for(category)
        if section_id is None:
            self.logger.error(f"Error: Unknown media type for Plex scan: {category}")
            return False

        request = RescanRequest(category=category, section_id=section_id)
        endpoint = f"/library/sections/{section_id}/refresh"
        self.logger.info(f"Triggering Plex scan for {category} library (section {section_id})")

        retrying = Retrying(
            stop=stop_after_attempt(self.rescan.attempts),
            wait=wait_fixed(self.rescan.delay_seconds),
            retry=retry_if_exception_type(requests.RequestException),
            before_sleep=lambda state: self._log_retry(request, state),
            sleep=self._sleep,
        )
        try:
            for attempt in retrying:
                with attempt:
                    request.attempt = attempt.retry_state.attempt_number
                    self._get(endpoint)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            self.logger.error(
                f"Error: Failed to trigger Plex scan for {category} library "
                f"after {request.attempt} attempts. Endpoint: {endpoint}. Last error: {last_error}"
            )
            return False

        self.logger.info(f"Plex scan triggered successfully (attempt {request.attempt}/{self.rescan.attempts})")
        return True
