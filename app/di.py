# app/di.py
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import FetchConfig, Settings, load_fetch_config
from app.services.fetch import WebFetchService
from app.services.httpclient import FetchExecutor

@dataclass
class Container:
    settings: Settings
    config: FetchConfig
    fetch_service: WebFetchService

def build_container(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Container:
    s = settings or Settings()
    config = load_fetch_config(s)

    executor = FetchExecutor(config, transport=transport)
    fetch = WebFetchService(config, executor)

    return Container(s, config, fetch)
