"""Tests for field and variable descriptors."""

from datetime import date, datetime

import pytest

from apihub import (
    FieldDescriptor,
    FieldFormat,
    FieldManager,
    FieldType,
    VariableDescriptor,
    VariableManager,
)
from apihub.fields import detect_type, generate_label


@pytest.mark.parametrize(
    "name, label",
    [
        ("site_name", "Site Name"),
        ("siteName", "Site Name"),
        ("id", "Id"),
        ("totalKWh", "Total KWh"),
    ],
)
def test_generate_label(name, label):
    assert generate_label(name) == label


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, FieldType.BOOLEAN),
        (3, FieldType.NUMBER),
        (2.5, FieldType.NUMBER),
        ("2024-03-01", FieldType.DATE),
        ("2024-03-01T10:00:00Z", FieldType.DATETIME),
        ("hello", FieldType.STRING),
        ([1], FieldType.ARRAY),
        ({"a": 1}, FieldType.OBJECT),
        (None, FieldType.STRING),
    ],
)
def test_detect_type(value, expected):
    assert detect_type(value) == expected


def test_descriptor_defaults_label():
    field = FieldDescriptor(name="created_at", semantic_type="datetime")

    assert field.label == "Created At"
    assert field.semantic_type == FieldType.DATETIME
    assert field.to_dict()["semantic_type"] == "datetime"


def test_detect_fields_from_list_sample():
    manager = FieldManager()
    sample = [{"id": 1, "name": "a", "price": 9.5, "day": "2024-01-02"}]

    fields = manager.detect_fields("items", sample, save=True)

    assert [(f.name, f.semantic_type, f.format) for f in fields] == [
        ("id", FieldType.NUMBER, FieldFormat.INTEGER),
        ("name", FieldType.STRING, FieldFormat.NONE),
        ("price", FieldType.NUMBER, FieldFormat.DECIMAL),
        ("day", FieldType.DATE, FieldFormat.DATE),
    ]
    assert manager.get_fields("items") == fields


def test_detect_fields_keeps_existing_descriptors():
    manager = FieldManager()
    custom = FieldDescriptor(name="id", semantic_type="string", description="External id")
    manager.set_fields("items", [custom])

    fields = manager.detect_fields("items", {"id": 5, "n": 1})

    assert fields[0] is custom
    assert manager.get_fields("items") == [custom]


def test_detect_fields_ignores_scalar_sample():
    assert FieldManager().detect_fields("items", "text") == []


def test_add_and_remove_field():
    manager = FieldManager()
    manager.add_field("items", FieldDescriptor(name="a"))
    manager.add_field("items", FieldDescriptor(name="a", description="replaced"))
    manager.add_field("items", FieldDescriptor(name="b"))

    assert [f.description for f in manager.get_fields("items")] == ["replaced", ""]
    assert manager.remove_field("items", "a") is True
    assert manager.remove_field("items", "a") is False


def test_transform_data_coerces_values():
    manager = FieldManager()
    manager.set_fields(
        "rows",
        [
            {"name": "count", "semantic_type": "number", "format": "integer"},
            {"name": "day", "semantic_type": "date"},
            {"name": "at", "semantic_type": "datetime"},
            {"name": "label", "semantic_type": "string", "default": "n/a"},
        ],
    )

    rows = manager.transform_data(
        "rows", [{"count": "3", "day": "2024-01-02", "at": "2024-01-02T03:04:05", "extra": 1}]
    )

    assert rows == [
        {
            "count": 3,
            "day": date(2024, 1, 2),
            "at": datetime(2024, 1, 2, 3, 4, 5),
            "label": "n/a",
        }
    ]


def test_transform_data_without_descriptors_is_identity():
    data = {"a": 1}

    assert FieldManager().transform_data("none", data) is data


def test_fields_export_import():
    manager = FieldManager()
    manager.set_fields("a", [FieldDescriptor(name="x", semantic_type="number")])
    other = FieldManager()

    other.import_fields(manager.export())

    assert other.get_fields("a") == manager.get_fields("a")


def test_variables_missing_and_defaults():
    manager = VariableManager()
    manager.set_variables(
        "site",
        [
            {"name": "id", "semantic_type": "number", "required": True},
            {"name": "lang", "required": True, "default": "en"},
            {"name": "page", "semantic_type": "number"},
        ],
    )

    assert manager.missing("site", {}) == ["id"]
    assert manager.missing("site", {"id": 1}) == []
    assert manager.apply_defaults("site", {"id": 1}) == {"id": 1, "lang": "en"}


def test_variable_add_replace_and_export():
    manager = VariableManager()
    manager.add_variable("a", VariableDescriptor(name="q"))
    manager.add_variable("a", VariableDescriptor(name="q", required=True))

    assert manager.export() == {
        "a": [
            {
                "name": "q",
                "semantic_type": "string",
                "required": True,
                "default": None,
                "description": "",
            }
        ]
    }
    assert manager.remove_variable("a", "q") is True
    assert manager.get_variables("a") == []
