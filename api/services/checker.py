from api.services.targets import CheckResult
import logging
import requests
import time

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "The Ark Uptime Monitor/1.0"


class WebsiteChecker:
    """One GET per check; no retries here, the next cycle is the retry."""

    def __init__(self, timeout: float = 10.0, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout
        self.user_agent = user_agent

    def check(self, url: str) -> CheckResult:
        start = time.monotonic()
        try:
            # stream=True: only the status line and headers are needed
            response = requests.get(
                url,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                stream=True,
            )
        except requests.RequestException as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.error(f"Website check failed for {url}: {e}")
            return CheckResult(is_up=False, status_code=0, latency_ms=latency_ms, error=str(e))

        latency_ms = int((time.monotonic() - start) * 1000)
        try:
            status_code = response.status_code
        finally:
            response.close()

        # Only an exact 200 counts as up
        return CheckResult(
            is_up=status_code == 200,
            status_code=status_code,
            latency_ms=latency_ms,
            error=None,
        )
