"""IFC GlobalId generation for routing elements, hosts and openings.

Openings carry 22-character compressed GUIDs so that an opening created here
can be traced to the same element in the host model and its IFC export.
"""

from __future__ import annotations

import uuid

import ifcopenshell.guid


def generate_ifc_id() -> str:
    """Generate a new IFC-compatible GlobalId (22 characters)."""
    return ifcopenshell.guid.compress(uuid.uuid4().hex)


def is_valid_ifc_id(value: str) -> bool:
    """Check that a GlobalId decompresses to a 128-bit UUID."""
    if not isinstance(value, str) or len(value) != 22:
        return False
    try:
        uuid.UUID(hex=ifcopenshell.guid.expand(value))
    except ValueError:
        return False
    return True
