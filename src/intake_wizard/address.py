from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Protocol

from intake_wizard.layout import FieldBinding
from intake_wizard.schemas import AddressResult
from intake_wizard.state import PersistedState

logger = logging.getLogger(__name__)

AUTOCOMPLETE_OPTIONS: Dict[str, Any] = {
    "componentRestrictions": {"country": "US"},
    "fields": ["address_components", "formatted_address"],
    "types": ["address"],
}

# places component type -> (answer key, which name to take)
_COMPONENT_KEYS = {
    "locality": ("city", "long_name"),
    "administrative_area_level_1": ("state", "short_name"),
    "postal_code": ("zip", "long_name"),
}


class AddressLookup(Protocol):
    def attach(
        self,
        field: FieldBinding,
        on_select: Callable[[Optional[AddressResult]], None],
        options: Dict[str, Any],
    ) -> None: ...


def parse_place(place: Any) -> Optional[AddressResult]:
    """Turn a places-style result dict into an AddressResult, or None if unusable."""
    if not isinstance(place, dict):
        return None
    formatted = str(place.get("formatted_address") or "").strip()
    if not formatted:
        return None
    parts: Dict[str, Optional[str]] = {"city": None, "state": None, "zip": None}
    components = place.get("address_components")
    for component in components if isinstance(components, list) else []:
        if not isinstance(component, dict):
            continue
        types = component.get("types") or []
        if not types:
            continue
        target = _COMPONENT_KEYS.get(types[0])
        if target is None:
            continue
        key, name_field = target
        name = component.get(name_field)
        if name:
            parts[key] = str(name)
    return AddressResult(formatted_address=formatted, **parts)


def apply_address(state: PersistedState, result: Optional[AddressResult]) -> bool:
    """Write a selected address into the store. Returns False when nothing was usable."""
    if result is None:
        logger.debug("no address details available; keeping existing values")
        return False
    values: Dict[str, Any] = {"address": result.formatted_address}
    for key in ("city", "state", "zip"):
        v = getattr(result, key)
        if v is not None:
            values[key] = v
    state.update(values)
    return True


def init_address_autocomplete(
    lookup: Optional[AddressLookup],
    field: Optional[FieldBinding],
    state: PersistedState,
) -> bool:
    """Wire the lookup to the address field. Missing pieces are skipped quietly."""
    if lookup is None:
        logger.debug("address lookup unavailable")
        return False
    if field is None:
        logger.error("address input not found")
        return False
    lookup.attach(field, lambda result: apply_address(state, result), dict(AUTOCOMPLETE_OPTIONS))
    return True
