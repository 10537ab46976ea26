from pydantic import BaseModel, Field
from typing import Dict, Optional

WEB_FETCH_DESCRIPTION = "Fetch a URL over HTTP with configurable security constraints"

class FetchIn(BaseModel):
    url: str = Field(..., min_length=1, description="The URL to fetch")
    method: str = Field("GET", min_length=1, description="HTTP method (GET, POST, etc.)")
    headers: Optional[Dict[str, str]] = Field(None, description="HTTP headers to include")
    body: Optional[str] = Field(None, description="Request body for POST/PUT requests")
