"""
goal: the classification store and adware matcher. holds the curated name sets (whitelist exact names,
whitelist path prefixes, blacklist exact names) and the ordered adware signatures, then answers the
questions a scan asks for every file or process it sees: is this known-safe, known-bad, or unknown?

how it decides
• exact whitelist name wins first, always
• if the whitelist is too small to be trusted (fewer than MINIMUM_WHITELIST_SIZE exact names plus prefixes)
  the store assumes a broken or half-loaded list and answers "known" instead of flagging everything
• otherwise a path prefix match counts as known
• anything left over is reported to the unknown-file sink and answered "not known"

adware matching is separate from the whitelist: a file is adware when its name is blacklisted or its name
ends with one of the adware signature suffixes (case-insensitive). adware_type() and is_adware() always agree.

the store is filled once (build phase) and only read afterwards (query phase). queries issued before the
lists are complete are not errors, the fail-safe above simply applies.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging  # for debug output about list population
import os  # for extracting basenames from paths
from collections.abc import Callable, Iterable  # type hints for callbacks and name lists
from dataclasses import dataclass  # for the immutable adware signature record
from typing import Any  # type hint for loosely typed input items

logger = logging.getLogger("auditeye.classification")

# below this many whitelist entries (exact + prefixes) lookups are not trusted
MINIMUM_WHITELIST_SIZE = 1000

# label used when a file is blacklisted by name but no signature names its family
GENERIC_ADWARE_LABEL = "Adware"

# type alias for the unknown-file sink, takes a path and returns nothing
UnknownFileFn = Callable[[str], None]


@dataclass(frozen=True)
class AdwareSignature:
    suffix: str  # lowercased extension or filename suffix, like ".download.plist"
    label: str  # human readable adware family, like "Genieo"

    def matches(self, name: str) -> bool:
        return name.lower().endswith(self.suffix)


def _clean_names(names: Iterable[Any] | None) -> list[str]:
    # keep only non-empty strings, silently skip anything else so appends never fail
    if names is None:
        return []
    if isinstance(names, str):  # a single name passed by mistake
        names = [names]
    return [n for n in names if isinstance(n, str) and n]


def _basename(path: str) -> str:
    return os.path.basename(path.rstrip("/")) if path else ""


class ClassificationStore:
    """Whitelist/blacklist/signature store with a minimum-population fail-safe."""

    def __init__(self, on_unknown: UnknownFileFn | None = None) -> None:
        self._whitelist: set[str] = set()  # exact known-safe names
        self._whitelist_prefixes: set[str] = set()  # known-safe path prefixes
        self._blacklist: set[str] = set()  # exact known-bad names
        self._signatures: list[AdwareSignature] = []  # ordered, first match wins
        self._on_unknown = on_unknown  # where unmatched paths are reported

    # build phase

    def append_to_whitelist(self, names: Iterable[Any] | None) -> None:
        self._whitelist.update(_clean_names(names))

    def append_to_whitelist_prefixes(self, names: Iterable[Any] | None) -> None:
        self._whitelist_prefixes.update(_clean_names(names))

    def append_to_blacklist(self, names: Iterable[Any] | None) -> None:
        self._blacklist.update(_clean_names(names))

    def append_adware_signatures(self, pairs: Iterable[Any] | None) -> None:
        """Append ``(suffix, label)`` pairs in order. Malformed pairs and empty suffixes are skipped."""
        known = {s.suffix for s in self._signatures}
        for pair in pairs or []:
            try:
                suffix, label = pair
            except (TypeError, ValueError):
                logger.debug("skipping malformed adware signature: %r", pair)
                continue
            if not isinstance(suffix, str) or not isinstance(label, str) or not suffix:
                logger.debug("skipping malformed adware signature: %r", pair)
                continue
            suffix = suffix.lower()
            if suffix in known:
                continue
            known.add(suffix)
            self._signatures.append(AdwareSignature(suffix=suffix, label=label or GENERIC_ADWARE_LABEL))

    # read-only views

    @property
    def whitelist_files(self) -> frozenset[str]:
        return frozenset(self._whitelist)

    @property
    def whitelist_prefixes(self) -> frozenset[str]:
        return frozenset(self._whitelist_prefixes)

    @property
    def blacklist_files(self) -> frozenset[str]:
        return frozenset(self._blacklist)

    @property
    def adware_signatures(self) -> tuple[AdwareSignature, ...]:
        return tuple(self._signatures)

    @property
    def whitelist_size(self) -> int:
        return len(self._whitelist) + len(self._whitelist_prefixes)

    @property
    def is_loaded(self) -> bool:
        """True once the whitelist is big enough for lookups to be trusted."""
        return self.whitelist_size >= MINIMUM_WHITELIST_SIZE

    # query phase

    def is_whitelist_file(self, name: str) -> bool:
        return name in self._whitelist

    def check_whitelist_file(self, name: str, path: str) -> bool:
        """
        Primary scan lookup. Returns True for known-safe files.

        Below the minimum whitelist size every file is answered True and nothing is recorded as
        unknown: a truncated list must not turn the whole machine into "unknown software".
        Prefix matching runs against the full path and is case-sensitive.
        """
        if name in self._whitelist:
            return True
        if not self.is_loaded:
            return True
        if path and any(path.startswith(prefix) for prefix in self._whitelist_prefixes):
            return True
        if self._on_unknown is not None:
            self._on_unknown(path)
        return False

    def is_blacklist_file(self, name: str) -> bool:
        return name in self._blacklist

    def _matching_signature(self, name: str, path: str) -> AdwareSignature | None:
        candidate = name or _basename(path)
        if not candidate:
            return None
        for signature in self._signatures:
            if signature.matches(candidate):
                return signature
        return None

    def is_adware_extension(self, name: str, path: str) -> bool:
        return self._matching_signature(name, path) is not None

    def is_adware(self, path: str) -> bool:
        name = _basename(path)
        return name in self._blacklist or self.is_adware_extension(name, path)

    def adware_type(self, path: str) -> str | None:
        """Label of the adware family for ``path``, or None when the path is not adware."""
        name = _basename(path)
        signature = self._matching_signature(name, path)
        if signature is not None:
            return signature.label
        if name in self._blacklist:
            return GENERIC_ADWARE_LABEL
        return None
