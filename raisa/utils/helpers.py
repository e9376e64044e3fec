# raisa/utils/helpers.py

import json
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Garante datetime com fuso UTC.
    SQLite devolve datetimes sem tzinfo; o Postgres do Supabase devolve com.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Dias inteiros (floor) entre duas datas; None se alguma estiver ausente."""
    start, end = as_utc(start), as_utc(end)
    if start is None or end is None:
        return None
    return (end - start) // timedelta(days=1)


def normalize_stack(stack: Any) -> List[str]:
    """
    Normaliza a stack tecnológica vinda do banco.

    Aceita lista, string separada por vírgula ou string JSON ("[...]"),
    e devolve uma lista sem duplicados, preservando a ordem.
    """
    if not stack:
        return []

    items: List[Any]
    if isinstance(stack, (list, tuple, set)):
        items = list(stack)
    elif isinstance(stack, str):
        trimmed = stack.strip()
        items = []
        if trimmed.startswith("["):
            try:
                parsed = json.loads(trimmed)
                if isinstance(parsed, list):
                    items = parsed
            except json.JSONDecodeError:
                items = []
        if not items:
            items = trimmed.strip("[]").split(",")
    else:
        items = [stack]

    seen = set()
    result = []
    for item in items:
        name = str(item).strip().strip("\"'")
        key = name.lower()
        if name and key not in seen:
            seen.add(key)
            result.append(name)
    return result


def dump_value(value: Any) -> Optional[str]:
    """Serializa valores do histórico de ajustes (JSON estável)."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


