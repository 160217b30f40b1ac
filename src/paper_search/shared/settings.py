"""
Runtime settings loaded from environment variables.

Variables:
    PAPER_SEARCH_DATA_DIR           Local index root (default ~/.paper-search)
    PAPER_SEARCH_SOURCES            Comma list of enabled provider names (default: all)
    PAPER_SEARCH_PEERS              Peer providers, "name=url,name=url"
    PAPER_SEARCH_PROVIDER_TIMEOUT   Per-provider timeout in seconds (default: none)
    PAPER_SEARCH_EMBEDDER           "mock" (default) or "specter2"
    PAPER_SEARCH_HTTP_API_PORT      Port for the peer HTTP API (0 disables)
    SEMANTIC_SCHOLAR_API_KEY, ADS_API_KEY, OPENALEX_EMAIL, UNPAYWALL_EMAIL
                                    Credentials reported by source_status()
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

DEFAULT_DATA_DIR = "~/.paper-search"
DEFAULT_EMBEDDER = "mock"
_EMBEDDERS = ("mock", "specter2")

# External databases an adapter can be registered for, with their credential needs
KNOWN_SOURCES: tuple[str, ...] = (
    "arxiv",
    "inspire",
    "semantic_scholar",
    "openalex",
    "crossref",
    "ads",
    "europepmc",
    "doaj",
    "vixra",
)


@dataclass(frozen=True)
class SourceStatus:
    name: str
    enabled: bool
    note: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "enabled": self.enabled, "note": self.note}


@dataclass(frozen=True)
class PeerConfig:
    name: str
    url: str


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR).expanduser())
    enabled_sources: tuple[str, ...] = ()
    peers: tuple[PeerConfig, ...] = ()
    provider_timeout: float | None = None
    embedder: str = DEFAULT_EMBEDDER
    http_api_port: int = 0
    semantic_scholar_api_key: str | None = None
    ads_api_key: str | None = None
    openalex_email: str | None = None
    unpaywall_email: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ConfigurationError: for malformed values.
        """
        env = os.environ if environ is None else environ

        data_dir = Path(env.get("PAPER_SEARCH_DATA_DIR") or DEFAULT_DATA_DIR).expanduser()

        enabled = tuple(
            name.strip().lower()
            for name in (env.get("PAPER_SEARCH_SOURCES") or "").split(",")
            if name.strip()
        )

        embedder = (env.get("PAPER_SEARCH_EMBEDDER") or DEFAULT_EMBEDDER).strip().lower()
        if embedder not in _EMBEDDERS:
            msg = f"PAPER_SEARCH_EMBEDDER must be one of {', '.join(_EMBEDDERS)}, got {embedder!r}"
            raise ConfigurationError(msg)

        return cls(
            data_dir=data_dir,
            enabled_sources=enabled,
            peers=_parse_peers(env.get("PAPER_SEARCH_PEERS") or ""),
            provider_timeout=_parse_timeout(env.get("PAPER_SEARCH_PROVIDER_TIMEOUT")),
            embedder=embedder,
            http_api_port=_parse_port(env.get("PAPER_SEARCH_HTTP_API_PORT")),
            semantic_scholar_api_key=env.get("SEMANTIC_SCHOLAR_API_KEY") or None,
            ads_api_key=env.get("ADS_API_KEY") or None,
            openalex_email=env.get("OPENALEX_EMAIL") or None,
            unpaywall_email=env.get("UNPAYWALL_EMAIL") or None,
        )

    def is_enabled(self, name: str) -> bool:
        """True when no source filter is set or ``name`` is listed in it."""
        return not self.enabled_sources or name.lower() in self.enabled_sources

    def source_status(self, registered: Iterable[str] = ()) -> list[SourceStatus]:
        """
        Status of every known provider plus configured peers.

        A known database is only enabled when an adapter for it is
        registered (``registered``) and it passes the source filter.
        """
        registered_names = {name.lower() for name in registered}
        notes = {
            "arxiv": "No API key required",
            "inspire": "No API key required",
            "semantic_scholar": "API key set" if self.semantic_scholar_api_key else "No API key (rate limited)",
            "openalex": "Polite pool email set" if self.openalex_email else "No email (limited rate)",
            "crossref": "No API key required",
            "ads": "API key set" if self.ads_api_key else "Disabled: ADS_API_KEY not set",
            "europepmc": "No API key required",
            "doaj": "No API key required",
            "vixra": "HTML scraping",
        }

        statuses: list[SourceStatus] = []
        for name in KNOWN_SOURCES:
            enabled = name in registered_names
            note = notes[name] if enabled else f"No adapter registered ({notes[name]})"
            if name == "ads" and not self.ads_api_key:
                enabled = False
                note = notes[name]
            statuses.append(SourceStatus(name, enabled, note))

        for peer in self.peers:
            statuses.append(SourceStatus(peer.name, True, f"Peer node at {peer.url}"))

        known = {status.name for status in statuses}
        for name in sorted(registered_names - known):
            statuses.append(SourceStatus(name, True, "Custom adapter"))

        if self.enabled_sources:
            statuses = [
                status if status.name in self.enabled_sources
                else SourceStatus(status.name, False, "Disabled by PAPER_SEARCH_SOURCES filter")
                for status in statuses
            ]
        return statuses

    def to_dict(self) -> dict[str, Any]:
        """Container configuration (``container.config.from_dict``)."""
        return {
            "data_dir": str(self.data_dir),
            "embedder": self.embedder,
            "provider_timeout": self.provider_timeout,
            "peers": [{"name": peer.name, "url": peer.url} for peer in self.peers],
            "enabled_sources": list(self.enabled_sources),
        }


def _parse_peers(raw: str) -> tuple[PeerConfig, ...]:
    peers: list[PeerConfig] = []
    seen: set[str] = set()
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, url = item.partition("=")
        name, url = name.strip().lower(), url.strip()
        if not sep or not name or not url.startswith(("http://", "https://")):
            msg = f"PAPER_SEARCH_PEERS entries must look like 'name=http://host:port', got {item!r}"
            raise ConfigurationError(msg)
        if name in seen:
            msg = f"Duplicate peer name in PAPER_SEARCH_PEERS: {name!r}"
            raise ConfigurationError(msg)
        seen.add(name)
        peers.append(PeerConfig(name, url))
    return tuple(peers)


def _parse_timeout(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        msg = f"PAPER_SEARCH_PROVIDER_TIMEOUT must be a number of seconds, got {raw!r}"
        raise ConfigurationError(msg) from None
    if value <= 0:
        msg = f"PAPER_SEARCH_PROVIDER_TIMEOUT must be positive, got {raw!r}"
        raise ConfigurationError(msg)
    return value


def _parse_port(raw: str | None) -> int:
    if raw is None or not raw.strip():
        return 0
    try:
        port = int(raw)
    except ValueError:
        msg = f"PAPER_SEARCH_HTTP_API_PORT must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from None
    if not 0 <= port <= 65535:
        msg = f"PAPER_SEARCH_HTTP_API_PORT out of range: {port}"
        raise ConfigurationError(msg)
    return port
