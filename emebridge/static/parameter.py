from __future__ import annotations

from typing import Any, Self, cast


class ParamStore:
    """
    Process-wide singleton holding runtime overrides set from the command line.
    """

    _instance: ParamStore | None = None
    _store: dict[str, Any]

    def __new__(cls: type[Self], external_dict: dict[str, Any] | None = None) -> Self:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._store = dict(external_dict) if external_dict else {}
        return cast(Self, cls._instance)

    def __init__(self, external_dict: dict[str, Any] | None = None) -> None:
        pass

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def get(self, key: str) -> Any | None:
        return self._store.get(key)

    def clear(self) -> None:
        self._store.clear()


paramstore: ParamStore = ParamStore()
