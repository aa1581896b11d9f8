from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from builder_core.catalog import ComponentCatalog
from builder_core.models import Document


CATALOG_DATA: dict[str, Any] = {
    "vehicleSystems": {
        "categoryName": "FAHRZEUG-SYSTEME",
        "categoryColor": "#1565C0",
        "components": [
            {
                "id": "cvc",
                "name": "Central Vehicle Computer",
                "shortName": "CVC",
                "description": "Zentraler Fahrzeugrechner",
            },
            {
                "id": "bms",
                "name": "Battery Management System",
                "shortName": "BMS",
                "description": "Ueberwacht die Hochvoltbatterie",
            },
        ],
    },
    "dataPlatform": {
        "categoryName": "DATA PLATFORM",
        "categoryColor": "#2E7D32",
        "components": [
            {
                "id": "lakehouse",
                "name": "Data Lakehouse",
                "shortName": "DLH",
                "description": "Speicher fuer Rohdaten und kuratierte Daten",
            },
            {
                "id": "stream",
                "name": "Stream Processing",
                "shortName": "SP",
                "description": "Verarbeitet Telemetrie in Echtzeit",
            },
        ],
    },
}


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    return CATALOG_DATA


@pytest.fixture
def catalog() -> ComponentCatalog:
    return ComponentCatalog(CATALOG_DATA)


def _use_case_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": "uc-1",
        "name": "Battery Analytics",
        "description": "Analyse der Batteriedaten",
        "owner": "Data Team",
        "phaseId": "phase-1",
        "businessValue": "Laengere Batterielebensdauer",
        "elements": [
            {"id": "c1", "type": "container", "name": "Fahrzeug", "x": 0, "y": 0, "width": 600, "height": 400},
            {"id": "b1", "type": "block", "blockName": "Battery Management System", "x": 20, "y": 20},
            {"id": "b2", "type": "block", "blockName": "Central Vehicle Computer", "x": 300, "y": 20},
            {"id": "b3", "type": "block", "blockName": "Data Lakehouse", "x": 20, "y": 200},
        ],
        "connections": [
            {"id": "k1", "fromIndex": 1, "toIndex": 2, "fromAnchor": "right", "toAnchor": "left"},
            {"id": "k2", "fromIndex": 2, "toIndex": 3},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def use_case_payload() -> Callable[..., dict[str, Any]]:
    return _use_case_payload


@pytest.fixture
def document() -> Document:
    return Document.from_json_dict(_use_case_payload())
