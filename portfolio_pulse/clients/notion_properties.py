"""Helpers that read typed values out of Notion page property payloads.

Every helper tolerates a missing property or an unexpected property type and
returns the empty value instead of raising.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

Props = Dict[str, Any]


def _prop(props: Props, key: str, *types: str) -> Optional[Dict[str, Any]]:
    prop = props.get(key) if isinstance(props, dict) else None
    if not isinstance(prop, dict) or prop.get("type") not in types:
        return None
    return prop


def _join_plain_text(fragments: Any) -> str:
    if not isinstance(fragments, list):
        return ""
    return "".join(
        fragment.get("plain_text", "")
        for fragment in fragments
        if isinstance(fragment, dict)
    )


def get_title(props: Props, key: str) -> str:
    prop = _prop(props, key, "title")
    return _join_plain_text(prop["title"]) if prop else ""


def get_text(props: Props, key: str) -> str:
    """Plain text for rich_text, title, select, status, url or string formulas."""
    prop = _prop(props, key, "rich_text", "title", "select", "status", "url", "formula")
    if prop is None:
        return ""
    kind = prop["type"]
    if kind in ("rich_text", "title"):
        return _join_plain_text(prop.get(kind))
    if kind in ("select", "status"):
        option = prop.get(kind)
        return option.get("name", "") if isinstance(option, dict) else ""
    if kind == "url":
        return prop.get("url") or ""
    formula = get_formula(props, key)
    return formula if isinstance(formula, str) else ""


def get_multi_select(props: Props, key: str) -> List[str]:
    prop = _prop(props, key, "multi_select")
    if prop is None:
        return []
    return [
        option["name"]
        for option in prop.get("multi_select") or []
        if isinstance(option, dict) and option.get("name")
    ]


def get_number(props: Props, key: str) -> Optional[float]:
    """Numbers from number, numeric formula or numeric rollup properties."""
    prop = _prop(props, key, "number", "formula", "rollup")
    if prop is None:
        return None
    if prop["type"] == "number":
        return prop.get("number")
    if prop["type"] == "rollup":
        rollup = prop.get("rollup") or {}
        return rollup.get("number") if rollup.get("type") == "number" else None
    formula = get_formula(props, key)
    return formula if isinstance(formula, (int, float)) and not isinstance(formula, bool) else None


def get_date(props: Props, key: str) -> str:
    prop = _prop(props, key, "date")
    if prop is None or not isinstance(prop.get("date"), dict):
        return ""
    return prop["date"].get("start") or ""


def get_checkbox(props: Props, key: str) -> Optional[bool]:
    prop = _prop(props, key, "checkbox")
    return prop.get("checkbox") if prop else None


def get_relation_ids(props: Props, key: str) -> List[str]:
    prop = _prop(props, key, "relation")
    if prop is None:
        return []
    return [
        relation["id"]
        for relation in prop.get("relation") or []
        if isinstance(relation, dict) and relation.get("id")
    ]


def get_created_time(props: Props, key: str) -> str:
    prop = _prop(props, key, "created_time")
    return (prop.get("created_time") or "") if prop else ""


def get_formula(props: Props, key: str) -> str | float | None:
    prop = _prop(props, key, "formula")
    formula = prop.get("formula") if prop else None
    if not isinstance(formula, dict):
        return None
    kind = formula.get("type")
    if kind == "string":
        return formula.get("string") or None
    if kind == "number":
        return formula.get("number")
    if kind == "boolean":
        return "true" if formula.get("boolean") else "false"
    if kind == "date":
        date_value = formula.get("date") or {}
        return date_value.get("start") or None
    return None


def page_title(page: Dict[str, Any]) -> str:
    """Return the title of a page whatever its title property is called."""
    for prop in (page.get("properties") or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return _join_plain_text(prop.get("title"))
    return ""


__all__ = [
    "get_checkbox",
    "get_created_time",
    "get_date",
    "get_formula",
    "get_multi_select",
    "get_number",
    "get_relation_ids",
    "get_text",
    "get_title",
    "page_title",
]
