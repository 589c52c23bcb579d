"""
Per-site URL, ID and price rules.

Each marketplace gets one SiteRules implementation registered under its
site identifier. The functions are deterministic and side-effect free so
they can be unit tested without a browser.

Example:
    >>> rules = get_rules("OLX")
    >>> url = rules.normalize_url("/autos-e-pecas/carros/1234567")
    >>> rules.extract_external_id(url)
    'OLX-1234567'
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Pattern, Type

_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_float_prefix(text: str) -> float:
    """Parse the leading decimal number of text. Missing or negative numbers give 0.0."""
    match = _FLOAT_PREFIX.match(text.strip())
    if not match:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return value if value > 0 else 0.0


def parse_brazilian_price(text: str) -> float:
    """
    Parse Brazilian price text.

    "R$ 2.350,00" -> 2350.0, "25000" -> 25000.0, "Grátis" -> 0.0
    """
    if not text:
        return 0.0
    cleaned = text.replace("R$", "")
    cleaned = re.sub(r"\s", "", cleaned)
    cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    return _parse_float_prefix(cleaned)


def parse_auction_price(text: str) -> float:
    """Parse auction bid text keeping only digits and the decimal comma."""
    if not text:
        return 0.0
    cleaned = re.sub(r"[^\d,]", "", text).replace(",", ".", 1)
    return _parse_float_prefix(cleaned)


class SiteRules(ABC):
    """Contract for the three pure functions every site provides."""

    #: Registry name, set by register_rules
    name: str = ""

    @abstractmethod
    def normalize_url(self, url: str) -> str:
        """Return an absolute URL, or "" when url is empty."""
        pass

    @abstractmethod
    def extract_external_id(self, url: str) -> str:
        """Return the site's stable listing ID, or "" when none is found."""
        pass

    @abstractmethod
    def parse_price(self, text: str) -> float:
        """Return the numeric price, 0.0 when unparseable."""
        pass


class PrefixedIdRules(SiteRules):
    """
    Rules for sites with a fixed base URL and a numeric ID in the listing URL.

    Subclasses set base_url, id_prefix and id_patterns; the first pattern
    whose first group matches wins.
    """

    base_url: str = ""
    id_prefix: str = ""
    id_patterns: List[Pattern[str]] = []

    def normalize_url(self, url: str) -> str:
        url = (url or "").strip()
        if not url:
            return ""
        if url.startswith("http"):
            return url
        if url.startswith("//"):
            return f"https:{url}"
        return f"{self.base_url}{url}"

    def extract_external_id(self, url: str) -> str:
        for pattern in self.id_patterns:
            match = pattern.search(url or "")
            if match:
                return f"{self.id_prefix}-{match.group(1)}"
        return ""

    def parse_price(self, text: str) -> float:
        return parse_brazilian_price(text)


_RULES: Dict[str, Type[SiteRules]] = {}


def register_rules(name: str) -> Callable[[Type[SiteRules]], Type[SiteRules]]:
    """Class decorator registering a SiteRules implementation under name."""

    def decorator(cls: Type[SiteRules]) -> Type[SiteRules]:
        cls.name = name
        _RULES[name] = cls
        return cls

    return decorator


def get_rules(name: str) -> SiteRules:
    """
    Instantiate the rules registered under name.

    Raises:
        KeyError: If no rules are registered for name.
    """
    try:
        return _RULES[name]()
    except KeyError:
        raise KeyError(f"No site rules registered for '{name}'. Known: {sorted(_RULES)}") from None


def registered_rules() -> List[str]:
    return sorted(_RULES)


# ============================================
# Site implementations
# ============================================


@register_rules("FACEBOOK_MARKETPLACE")
class FacebookMarketplaceRules(PrefixedIdRules):
    base_url = "https://www.facebook.com"
    id_prefix = "FB"
    id_patterns = [re.compile(r"/marketplace/item/(\d+)")]


@register_rules("OLX")
class OlxRules(PrefixedIdRules):
    base_url = "https://www.olx.com.br"
    id_prefix = "OLX"
    id_patterns = [re.compile(r"/(\d+)$")]


@register_rules("MERCADO_LIVRE")
class MercadoLivreRules(PrefixedIdRules):
    """Mercado Livre IDs look like MLB-123456789 or MLB123456789."""

    base_url = "https://www.mercadolivre.com.br"
    _ml_id = re.compile(r"ML[A-Z]-?(\d+)", re.IGNORECASE)
    _numeric = re.compile(r"(\d{8,})")

    def extract_external_id(self, url: str) -> str:
        match = self._ml_id.search(url or "")
        if match:
            return match.group(0).replace("-", "").upper()
        numeric = self._numeric.search(url or "")
        return f"MLB{numeric.group(1)}" if numeric else ""


@register_rules("WEBMOTORS")
class WebmotorsRules(PrefixedIdRules):
    base_url = "https://www.webmotors.com.br"
    id_prefix = "WM"
    id_patterns = [re.compile(r"/(\d+)\?"), re.compile(r"/(\d+)$")]


@register_rules("ICARROS")
class IcarrosRules(PrefixedIdRules):
    base_url = "https://www.icarros.com.br"
    id_prefix = "IC"
    id_patterns = [re.compile(r"/(\d+)\.html")]


@register_rules("IMOVELWEB")
class ImovelwebRules(PrefixedIdRules):
    base_url = "https://www.imovelweb.com.br"
    id_prefix = "IW"
    id_patterns = [re.compile(r"-(\d+)\.html")]


@register_rules("VIVA_REAL")
class VivaRealRules(PrefixedIdRules):
    base_url = "https://www.vivareal.com.br"
    id_prefix = "VR"
    id_patterns = [re.compile(r"id-(\d+)")]


@register_rules("ZAP_IMOVEIS")
class ZapImoveisRules(PrefixedIdRules):
    base_url = "https://www.zapimoveis.com.br"
    id_prefix = "ZAP"
    id_patterns = [re.compile(r"data-id=(\d+)"), re.compile(r"(\d+)$")]


@register_rules("LEILAO")
class LeilaoRules(SiteRules):
    """Generic auction aggregator: no single base URL, slug-based IDs."""

    def normalize_url(self, url: str) -> str:
        # Relative URLs cannot be resolved without knowing which auction house served them
        return (url or "").strip()

    def extract_external_id(self, url: str) -> str:
        slug = (url or "").split("/")[-1]
        return f"LEI-{slug}" if slug else ""

    def parse_price(self, text: str) -> float:
        return parse_auction_price(text)
