# app/services/fetch.py
from __future__ import annotations

import logging
from typing import Mapping, Optional

from app.config import FetchConfig
from app.logging import log_access
from app.services.envelope import NO_RESPONSE_STATUS, FetchResult, error_result
from app.services.httpclient import FetchExecutor
from app.services.policy import HeaderValue, merge_headers, validate_request

logger = logging.getLogger(__name__)


class WebFetchService:
    """
    The web_fetch pipeline: validate -> filter headers -> execute.
    A rejection stops the pipeline; the attempt is still access-logged.
    Authentication happens earlier, at the transport boundary.
    """

    def __init__(self, config: FetchConfig, executor: FetchExecutor):
        self.config = config
        self.executor = executor

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
        *,
        passthrough_headers: Optional[Mapping[str, HeaderValue]] = None,
        client_ip: str = "-",
    ) -> FetchResult:
        rejection = validate_request(url, method, self.config)
        if rejection is not None:
            logger.info("fetch rejected: %s", rejection.message)
            log_access(url, method.upper(), NO_RESPONSE_STATUS, 0, client_ip)
            return error_result(url, rejection.message)

        outgoing = merge_headers(headers, passthrough_headers, self.config)
        return await self.executor.execute(url, method, outgoing, body, client_ip=client_ip)
