"""Tests for SAP table rendering."""

import pytest

from mcp_orchestrator.infrastructure.llm.sap_formatter import (
    GenericSAPFormatter,
    SAPTableSchema,
    format_amount,
    format_sap_date,
)

ORDER = {
    "VBELN": "0000004711",
    "AUART": "TA",
    "ERDAT": "20240131",
    "NETWR": "1234.5",
    "WAERK": "EUR",
}


@pytest.fixture
def formatter():
    return GenericSAPFormatter()


class TestValueFormatting:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("20240131", "31.01.2024"), (20231224, "24.12.2023"), ("2024-01-31", "2024-01-31")],
    )
    def test_dates(self, value, expected):
        assert format_sap_date(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1234.5, "1.234,50"), ("1000000", "1.000.000,00"), (0.125, "0,12"), ("n/a", "n/a")],
    )
    def test_amounts(self, value, expected):
        assert format_amount(value) == expected


class TestKnownTables:
    def test_sales_orders(self, formatter):
        text = formatter.format_table_data("VBAK", [ORDER])

        assert text == (
            "Ja, ich kann jetzt die ersten 1 Einträge aus der VBAK-Tabelle Ihres "
            "SAP-Systems anzeigen:\n\n"
            "1. 0000004711 - Standardauftrag (TA) vom 31.01.2024, Wert: 1.234,50 EUR\n\n"
            "Die Belege enthalten verschiedene Auftragsarten mit unterschiedlichen "
            "Nettowerten in EUR."
        )

    def test_unknown_type_code_is_kept(self, formatter):
        text = formatter.format_table_data("VBAK", [{**ORDER, "AUART": "ZX"}])
        assert "0000004711 - ZX (ZX)" in text

    def test_invoice_currency_in_summary(self, formatter):
        invoice = {
            "VBELN": "90000001",
            "FKART": "F2",
            "FKDAT": "20240201",
            "NETWR": 10,
            "WAERK": "USD",
        }

        text = formatter.format_table_data("vbrk", [invoice])

        assert "1. 90000001 - Debitorische Rechnung (F2) vom 01.02.2024, Wert: 10,00 USD" in text
        assert text.endswith("Nettowerten in USD.")

    def test_missing_fields_render_empty(self, formatter):
        text = formatter.format_table_data("KNA1", [{"KUNNR": "100", "KTOKD": "KUNA"}])
        assert "1. 100 -  (KUNA)" in text

    def test_summary_defaults_to_euro(self, formatter):
        text = formatter.format_table_data("VBAK", [{"VBELN": "1"}])
        assert text.endswith("Nettowerten in EUR.")


class TestFallbacks:
    def test_empty_rows(self, formatter):
        assert formatter.format_table_data("VBAK", []) == (
            "Die SAP-Tabelle VBAK wurde erfolgreich abgerufen, enthält aber keine Daten."
        )

    def test_unknown_table_dumps_rows(self, formatter):
        text = formatter.format_table_data("T001", [{"BUKRS": "1000", "BUTXT": "Müller AG"}])

        assert text == (
            "Die SAP-Tabelle T001 wurde erfolgreich abgerufen:\n\n"
            '1. {"BUKRS": "1000", "BUTXT": "Müller AG"}\n'
        )


class TestExtension:
    def test_added_schema_is_used(self, formatter):
        formatter.add_table_schema(
            "t001w",
            SAPTableSchema(
                table_name="T001W",
                display_template="{index}. {WERKS} {NAME1} ({typeDescription})",
                type_field="VLFKZ",
            ),
        )
        formatter.add_type_translations("VLFKZ", {"A": "Werk"})

        row = {"WERKS": "1000", "NAME1": "Hamburg", "VLFKZ": "A"}
        text = formatter.format_table_data("T001W", [row])

        assert formatter.is_table_supported("t001w")
        assert "1. 1000 Hamburg (Werk)" in text
        assert text.endswith("Die Tabelle enthält 1 Einträge mit verschiedenen Datentypen.")

    def test_supported_tables(self, formatter):
        assert formatter.get_supported_tables() == ["VBAK", "VBRK", "KNA1", "MARA"]
        assert not formatter.is_table_supported("BKPF")

    def test_formatters_do_not_share_state(self):
        first = GenericSAPFormatter()
        first.add_type_translations("AUART", {"TA": "geändert"})

        assert "Standardauftrag" in GenericSAPFormatter().format_table_data("VBAK", [ORDER])
