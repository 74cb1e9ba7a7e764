"""
Module Client Data Models
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass
class ModuleRequest:
    """A call to one module endpoint"""
    module: str
    endpoint: str
    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None  # seconds


@dataclass
class ModuleResponse:
    """Response returned by a module endpoint"""
    data: Any
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300
