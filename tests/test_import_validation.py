from __future__ import annotations

from builder_core.catalog import ComponentCatalog
from builder_core.validation import validate_import_payload


def test_valid_bundle(use_case_payload, catalog: ComponentCatalog) -> None:
    result = validate_import_payload(
        {"exportType": "usecases", "useCases": [use_case_payload()]}, catalog
    )

    assert result.valid
    assert result.errors == []
    assert result.warnings == []
    assert result.summary == "Valide"


def test_empty_payload_is_fatal() -> None:
    result = validate_import_payload(None)

    assert not result.valid
    assert result.errors == ["Daten sind leer"]


def test_missing_use_cases_short_circuits() -> None:
    result = validate_import_payload(
        {"exportType": "phases", "newBlocks": [{"category": "x"}]}
    )

    assert result.errors == ["useCases Array fehlt oder ist ungueltig"]
    assert result.warnings == ["Unerwarteter exportType: phases"]
    assert result.summary == "1 Fehler gefunden"


def test_empty_use_case_list_is_a_warning() -> None:
    result = validate_import_payload({"exportType": "usecases", "useCases": []})

    assert result.valid
    assert result.warnings == ["Keine Use Cases in der Datei"]
    assert result.summary == "Valide mit 1 Warnungen"


def test_use_case_messages_are_prefixed(use_case_payload, catalog: ComponentCatalog) -> None:
    broken = use_case_payload(name="Broken", connections=[{"id": "k", "fromIndex": 1, "toIndex": 1}])
    unnamed = use_case_payload(name="")
    del unnamed["owner"]

    result = validate_import_payload(
        {"exportType": "usecases", "useCases": [use_case_payload(), broken, unnamed]}, catalog
    )

    assert result.errors == [
        'Use Case 2 "Broken": Connection 0: Element kann nicht mit sich selbst verbunden sein',
        'Use Case 3 "Unbenannt": Use Case Name ist erforderlich',
    ]
    assert result.warnings == ['Use Case 3 "Unbenannt": Kein Owner zugewiesen']


def test_new_blocks_need_name_and_category(use_case_payload) -> None:
    result = validate_import_payload(
        {
            "exportType": "usecases",
            "useCases": [use_case_payload()],
            "newBlocks": [
                {"name": "Fleet Dashboard", "category": "frontends"},
                {"category": "external"},
                {"name": "Weather API"},
            ],
        }
    )

    assert result.errors == ["newBlocks[1]: Name fehlt"]
    assert result.warnings == ['newBlocks[2] "Weather API": Kategorie fehlt']
    assert result.to_dict()["valid"] is False


def test_empty_object_gets_structural_checks() -> None:
    result = validate_import_payload({})

    assert result.errors == ["useCases Array fehlt oder ist ungueltig"]
    assert result.warnings == ["Unerwarteter exportType: None"]
