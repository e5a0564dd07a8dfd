"""
Schema-driven rendering of SAP table rows as German text.

Known tables (VBAK, VBRK, KNA1, MARA) carry a display template, the fields
to render as dates (``YYYYMMDD`` -> ``dd.mm.yyyy``) and amounts (de-DE,
two decimals), and a type field translated into a readable description.
Unknown tables fall back to one JSON dump per row.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_DE_SEPARATORS = str.maketrans(",.", ".,")


@dataclass
class SAPTableSchema:
    """Rendering rules for one SAP table."""

    table_name: str
    display_template: str
    key_fields: list[str] = field(default_factory=list)
    date_fields: list[str] = field(default_factory=list)
    amount_fields: list[str] = field(default_factory=list)
    currency_field: str | None = None
    type_field: str | None = None
    description_field: str | None = None


DEFAULT_SCHEMAS: dict[str, SAPTableSchema] = {
    "VBAK": SAPTableSchema(
        table_name="VBAK",
        key_fields=["VBELN"],
        date_fields=["ERDAT"],
        amount_fields=["NETWR"],
        currency_field="WAERK",
        type_field="AUART",
        description_field="VBELN",
        display_template=(
            "{index}. {VBELN} - {typeDescription} ({AUART}) vom {ERDAT}, Wert: {NETWR} {WAERK}"
        ),
    ),
    "VBRK": SAPTableSchema(
        table_name="VBRK",
        key_fields=["VBELN"],
        date_fields=["FKDAT"],
        amount_fields=["NETWR"],
        currency_field="WAERK",
        type_field="FKART",
        description_field="VBELN",
        display_template=(
            "{index}. {VBELN} - {typeDescription} ({FKART}) vom {FKDAT}, Wert: {NETWR} {WAERK}"
        ),
    ),
    "KNA1": SAPTableSchema(
        table_name="KNA1",
        key_fields=["KUNNR"],
        date_fields=["ERDAT"],
        type_field="KTOKD",
        description_field="NAME1",
        display_template="{index}. {KUNNR} - {NAME1} ({KTOKD})",
    ),
    "MARA": SAPTableSchema(
        table_name="MARA",
        key_fields=["MATNR"],
        date_fields=["ERSDA"],
        type_field="MTART",
        description_field="MAKTX",
        display_template="{index}. {MATNR} - {MAKTX} ({MTART})",
    ),
}

DEFAULT_TYPE_TRANSLATIONS: dict[str, dict[str, str]] = {
    "AUART": {
        "TA": "Standardauftrag",
        "RK": "Reklamation",
        "AG": "Vertrag",
        "VC01": "Vertrag",
        "OR": "Auftrag",
        "QT": "Angebot",
    },
    "FKART": {
        "F1": "Kundenrechnung",
        "F2": "Debitorische Rechnung",
        "F5": "Pro-forma-Rechnung",
        "F8": "Sammelrechnung",
        "G2": "Gutschrift",
        "L2": "Lieferantengutschrift",
        "RE": "Rechnung",
        "RK": "Rechnungskorrektur",
        "S1": "Stornierung",
        "S2": "Storno-Gutschrift",
    },
    "KTOKD": {
        "KUNA": "Kunde Inland",
        "KUNB": "Kunde Ausland",
        "KUNC": "Einmalkunde",
    },
    "MTART": {
        "FERT": "Fertigerzeugnis",
        "HALB": "Halbfabrikat",
        "ROH": "Rohstoff",
        "HIBE": "Hilfsbetriebsstoff",
    },
}

_SUMMARIES = {
    "VBAK": (
        "Die Belege enthalten verschiedene Auftragsarten mit unterschiedlichen "
        "Nettowerten in {currency}."
    ),
    "VBRK": (
        "Die Rechnungen enthalten verschiedene Rechnungsarten mit unterschiedlichen "
        "Nettowerten in {currency}."
    ),
    "KNA1": "Die Kundenstammdaten enthalten verschiedene Kundenarten und Geschäftspartner.",
    "MARA": "Die Materialstammdaten enthalten verschiedene Materialarten und Produkte.",
}


def format_sap_date(value: Any) -> str:
    """``20240131`` -> ``31.01.2024``; anything else is returned unchanged."""
    text = str(value)
    if len(text) != 8 or not text.isdigit():
        return text
    return f"{text[6:8]}.{text[4:6]}.{text[0:4]}"


def format_amount(value: Any) -> str:
    """de-DE amount with two decimals, e.g. ``1234.5`` -> ``1.234,50``."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{amount:,.2f}".translate(_DE_SEPARATORS)


class GenericSAPFormatter:
    """Formats tableContents rows for the user."""

    def __init__(self) -> None:
        self._schemas: dict[str, SAPTableSchema] = dict(DEFAULT_SCHEMAS)
        self._type_translations: dict[str, dict[str, str]] = {
            name: dict(values) for name, values in DEFAULT_TYPE_TRANSLATIONS.items()
        }

    def format_table_data(self, table_name: str, rows: Any) -> str:
        if not rows or not isinstance(rows, list):
            return (
                f"Die SAP-Tabelle {table_name} wurde erfolgreich abgerufen, "
                "enthält aber keine Daten."
            )

        schema = self._schemas.get(table_name.upper())
        if schema is None:
            return self._format_generic_table(table_name, rows)

        lines = [
            f"Ja, ich kann jetzt die ersten {len(rows)} Einträge aus der "
            f"{table_name}-Tabelle Ihres SAP-Systems anzeigen:",
            "",
        ]
        lines.extend(
            self._format_row(row, schema, index)
            for index, row in enumerate(rows, start=1)
            if isinstance(row, dict)
        )
        content = "\n".join(lines) + "\n"

        summary = self._summary(table_name, rows, schema)
        if summary:
            content += "\n" + summary
        return content

    def _format_row(self, row: dict[str, Any], schema: SAPTableSchema, index: int) -> str:
        values: dict[str, str] = {"index": str(index)}
        for name, value in row.items():
            if name in schema.date_fields and value:
                values[name] = format_sap_date(value)
            elif name in schema.amount_fields and value:
                values[name] = format_amount(value)
            else:
                values[name] = "" if value is None else str(value)

        if schema.type_field and row.get(schema.type_field):
            type_value = str(row[schema.type_field])
            translations = self._type_translations.get(schema.type_field, {})
            values["typeDescription"] = translations.get(type_value, type_value)

        # unresolved placeholders render as empty
        return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), ""), schema.display_template)

    @staticmethod
    def _format_generic_table(table_name: str, rows: list[Any]) -> str:
        lines = [f"Die SAP-Tabelle {table_name} wurde erfolgreich abgerufen:", ""]
        lines.extend(
            f"{index}. {json.dumps(row, ensure_ascii=False, default=str)}"
            for index, row in enumerate(rows, start=1)
        )
        return "\n".join(lines) + "\n"

    @staticmethod
    def _summary(table_name: str, rows: list[Any], schema: SAPTableSchema) -> str:
        first = rows[0] if isinstance(rows[0], dict) else {}
        currency = (first.get(schema.currency_field) if schema.currency_field else None) or "EUR"
        template = _SUMMARIES.get(table_name.upper())
        if template is None:
            return f"Die Tabelle enthält {len(rows)} Einträge mit verschiedenen Datentypen."
        return template.format(currency=currency)

    def add_table_schema(self, table_name: str, schema: SAPTableSchema) -> None:
        self._schemas[table_name.upper()] = schema
        logger.info(f"Added schema for table: {table_name}")

    def add_type_translations(self, field_name: str, translations: dict[str, str]) -> None:
        self._type_translations[field_name] = dict(translations)
        logger.info(f"Added type translations for field: {field_name}")

    def get_supported_tables(self) -> list[str]:
        return list(self._schemas)

    def is_table_supported(self, table_name: str) -> bool:
        return table_name.upper() in self._schemas
