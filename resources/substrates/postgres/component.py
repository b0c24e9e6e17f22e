"""Component declaration for the Postgres administrative substrate."""

from __future__ import annotations

RESOURCE_COMPONENT_ID = "substrate_postgres"
