"""Tests for the per-target field catalog."""

from __future__ import annotations

import pytest

from ferry.catalog.fields import (
    FIELD_CATALOG,
    aliases_for,
    defaults_for,
    field_for,
    fields_for,
    target_info,
)
from ferry.core.exceptions import UnknownTargetError
from ferry.models.field import DataType
from ferry.models.job import ImportTarget


class TestFieldsFor:
    def test_every_target_has_fields(self):
        for target in ImportTarget:
            assert fields_for(target)

    def test_field_names_unique_per_target(self):
        for fields in FIELD_CATALOG.values():
            names = [f.name for f in fields]
            assert len(names) == len(set(names))

    def test_accepts_string_target(self):
        assert fields_for("projects")[0].name == "name"

    def test_unknown_target(self):
        with pytest.raises(UnknownTargetError):
            fields_for("invoices")

    def test_enum_fields_have_domains(self):
        for fields in FIELD_CATALOG.values():
            for f in fields:
                if f.type == DataType.ENUM:
                    assert f.enum_values


class TestLookups:
    def test_field_for(self):
        definition = field_for("clients", "displayName")
        assert definition.label == "Client Name"
        assert definition.required
        assert field_for("clients", "budget") is None

    def test_aliases(self):
        assert "client name" in aliases_for("displayName")
        assert aliases_for("nonexistent") == []

    def test_target_info_and_defaults(self):
        assert target_info("communication_logs")["label"] == "Communication Logs"
        assert defaults_for("clients") == {"status": "potential"}
        assert defaults_for("projects") == {"status": "lead"}
        assert defaults_for("contacts") == {}
