"""
Page state entities: the closed PageType set and the signals it is derived from.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict


class PageType(str, Enum):
    """Classification of a loaded page. Exactly one value per page load."""

    CONTENT = "CONTENT"
    NO_RESULTS = "NO_RESULTS"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    BLOCKED = "BLOCKED"
    CAPTCHA = "CAPTCHA"
    CHECKPOINT = "CHECKPOINT"

    @property
    def is_success(self) -> bool:
        """CONTENT and NO_RESULTS both mean the session worked."""
        return self in (PageType.CONTENT, PageType.NO_RESULTS)


@dataclass(frozen=True)
class PageSignals:
    """Raw observations about a loaded page used for diagnosis."""

    has_recaptcha: bool = False
    has_hcaptcha: bool = False
    has_cloudflare: bool = False
    has_datadome: bool = False
    has_login_form: bool = False
    has_login_text: bool = False
    has_no_results_msg: bool = False
    has_search_results: bool = False
    has_checkpoint: bool = False
    visible_elements: int = 0
    body_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PageDiagnosis:
    """Result of diagnosing one page load."""

    page_type: PageType
    url: str
    final_url: str
    title: str = ""
    signals: PageSignals = field(default_factory=PageSignals)
