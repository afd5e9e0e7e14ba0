"""HTTP configuration model."""

from typing import Dict, List

from pydantic import BaseModel, Field


class HttpSettings(BaseModel):
    """Configuration for retried HTTP requests.
    
    Attributes:
        timeout: Per-request timeout in seconds
        retry_statuses: Response status codes that trigger another attempt
        headers: Extra headers sent with every request
    """

    timeout: float = Field(10.0, gt=0.0, le=600.0)
    retry_statuses: List[int] = Field(default_factory=lambda: [429, 500, 502, 503, 504])
    headers: Dict[str, str] = Field(default_factory=dict)
