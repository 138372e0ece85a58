from __future__ import annotations

import logging
import math
from typing import Any

import pandas as pd

from .errors import MergeError

logger = logging.getLogger(__name__)

FIELD_SEP = "."


def is_tabular(page: Any) -> bool:
    return isinstance(page, pd.DataFrame)


def _keep_empty_objects(record: dict[str, Any]) -> dict[str, Any]:
    # json_normalize drops keys whose value is {}; a null keeps the column.
    kept: dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, dict):
            value = _keep_empty_objects(value) if value else None
        kept[key] = value
    return kept


def flatten_page(value: Any) -> Any:
    """Turn one decoded JSON response into a page.

    A list of objects becomes a DataFrame whose nested objects are spread into
    dotted column names (``badges.comments``); arrays are kept as list cells.
    A field holding an empty object becomes a column of nulls. Empty lists and
    objects become an empty DataFrame. Any other value is not tabular and is
    returned untouched.
    """
    if isinstance(value, (list, dict)) and len(value) == 0:
        logger.info("The response is empty")
        return pd.DataFrame()

    if isinstance(value, list) and all(isinstance(item, dict) for item in value):
        records = [_keep_empty_objects(item) for item in value]
        return pd.json_normalize(records, sep=FIELD_SEP)

    return value


def _value_kinds(column: pd.Series) -> set[str]:
    kinds: set[str] = set()
    for value in column:
        if isinstance(value, list):
            kinds.add("list")
        elif isinstance(value, dict):
            kinds.add("object")
        elif value is None or (isinstance(value, float) and math.isnan(value)):
            continue
        else:
            kinds.add("scalar")
    return kinds


def _incompatible_columns(acc: pd.DataFrame, page: pd.DataFrame) -> list[str]:
    clashes: list[str] = []
    for name in acc.columns:
        if name not in page.columns:
            continue
        left = _value_kinds(acc[name])
        right = _value_kinds(page[name])
        if left and right and left != right:
            clashes.append(str(name))
    return clashes


def merge_pages(acc: pd.DataFrame, page: Any) -> pd.DataFrame:
    """Append ``page`` below ``acc``, keeping fetch order.

    Raises:
        MergeError: ``page`` is not tabular, or a shared column holds lists on
            one side and scalars on the other.
    """
    if not is_tabular(page):
        raise MergeError(
            f"Cannot append {type(page).__name__} to tabular results",
            partial=acc,
            page=page,
        )

    clashes = _incompatible_columns(acc, page)
    if clashes:
        raise MergeError(
            "Incompatible column(s) across pages: " + ", ".join(clashes),
            partial=acc,
            page=page,
        )

    if acc.empty and len(acc.columns) == 0:
        return page.reset_index(drop=True)
    if page.empty and len(page.columns) == 0:
        return acc

    return pd.concat([acc, page], ignore_index=True, sort=False)
