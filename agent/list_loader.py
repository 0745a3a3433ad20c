"""
goal: fill a classification store from the bundled JSON list file. the file holds four keys:
whitelist (exact names), whitelist_prefixes (path prefixes), blacklist (exact names) and adware_extensions
(list of [suffix, label] pairs). a missing, empty or broken file leaves the store empty, which makes the
store fall back to its fail-safe instead of flagging everything on the machine.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import json  # for reading the list file
import logging  # for reporting a broken list file
import os  # for checking if the list file exists
from typing import Any  # type hint for flexible dictionary values

from algorithm.classification import ClassificationStore

logger = logging.getLogger("auditeye.lists")


def _read_lists(path: str) -> dict[str, Any]:
    if not os.path.exists(path):  # no list file shipped, nothing to load
        logger.warning("classification list file not found: %s", path)
        return {}
    try:
        with open(path, encoding="utf-8") as f:  # open the JSON file as UTF-8 text
            content = f.read().strip()
        if not content:  # empty file, treat as no lists
            return {}
        data = json.loads(content)
    except (json.JSONDecodeError, ValueError) as e:  # malformed JSON
        logger.warning("classification list file is not valid JSON: %s (%s)", path, e)
        return {}
    except OSError as e:  # permissions, file vanished, etc
        logger.warning("classification list file could not be read: %s (%s)", path, e)
        return {}
    return data if isinstance(data, dict) else {}  # make sure we got an object


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def load_classification(path: str, store: ClassificationStore) -> ClassificationStore:
    """Append every list found in ``path`` to ``store`` and return the store."""
    data = _read_lists(path)
    store.append_to_whitelist(_as_list(data.get("whitelist")))
    store.append_to_whitelist_prefixes(_as_list(data.get("whitelist_prefixes")))
    store.append_to_blacklist(_as_list(data.get("blacklist")))
    store.append_adware_signatures(_as_list(data.get("adware_extensions")))
    if not store.is_loaded:
        logger.info(
            "whitelist has only %d entries, unknown-file detection is disabled for this run",
            store.whitelist_size,
        )
    return store
