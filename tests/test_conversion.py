"""
Tests for Conversion Orchestrator Module
"""

import json
import tempfile
from pathlib import Path

import pytest
from sfcc_catalog.config_loader import MappingConfiguration, MappingConfigCache
from sfcc_catalog.conversion import ConversionOrchestrator


def build_mapping():
    return MappingConfiguration.from_dict({
        "companyName": "TestCo",
        "catalog": {"catalogId": "test-catalog", "defaultCurrency": "USD", "defaultLocale": "en_US"},
        "columnMappings": {
            "product-id": {"objectAttribute": "productId", "dataType": "string", "required": True},
            "display-name": {"objectAttribute": "displayName", "dataType": "string"},
            "brand": {"objectAttribute": "brand", "dataType": "string"},
            "online-flag": {"objectAttribute": "onlineFlag", "dataType": "boolean"}
        },
        "headerMappings": {
            "product-id": "SKU_ABUELO",
            "display-name": "NOMBRE_PROD",
            "brand": "MARCA",
            "online-flag": "ACTIVO"
        },
        "transformations": {
            "boolean": {"true": ["true", "yes", "1"], "false": ["false", "no", "0"]}
        }
    })


class TestConversionOrchestrator:
    """Test cases for ConversionOrchestrator."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.orchestrator = ConversionOrchestrator(MappingConfigCache(self.temp_dir.name))
        self.mapping = build_mapping()

    def teardown_method(self):
        """Clean up temporary directory."""
        self.temp_dir.cleanup()

    def test_end_to_end(self):
        """Test a single row converts to a valid catalog product."""
        rows = [{"SKU_ABUELO": "PROD-1", "NOMBRE_PROD": "Test Shoe", "MARCA": "Acme", "ACTIVO": "1"}]

        result = self.orchestrator.convert_with_mapping(rows, self.mapping)

        assert result.success
        assert result.errors == []
        assert result.warnings == []
        assert result.stats.total_rows == 1
        assert result.stats.processed_rows == 1
        assert result.stats.skipped_rows == 0

        xml = result.xml_content
        assert '<product product-id="PROD-1">' in xml
        assert '<display-name xml:lang="x-default">Test Shoe</display-name>' in xml
        assert '<brand>Acme</brand>' in xml
        assert '<online-flag>true</online-flag>' in xml
        assert xml.index('<display-name') < xml.index('<brand>') < xml.index('<online-flag>')
        assert 'catalog-id="test-catalog"' in xml

    def test_invalid_record_excluded(self):
        """Test products failing validation are reported and left out of the XML."""
        rows = [
            {"SKU_ABUELO": "", "NOMBRE_PROD": "Broken", "MARCA": "Acme"},
            {"SKU_ABUELO": "P2", "NOMBRE_PROD": "Good", "MARCA": "Acme"},
        ]

        result = self.orchestrator.convert_with_mapping(rows, self.mapping)

        assert not result.success
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.row == 1
        assert error.type == 'validation'
        assert error.column == 'product-id'
        assert error.field == 'product'
        assert 'Product ID is required' in error.message
        assert result.stats.total_rows == 2
        assert result.stats.processed_rows == 1
        assert result.stats.skipped_rows == 1
        assert result.stats.validation_errors == 1
        assert '<product product-id="P2">' in result.xml_content
        assert 'Broken' not in result.xml_content

    def test_no_valid_products(self):
        """Test no XML is produced when every product is invalid."""
        result = self.orchestrator.convert_with_mapping([{"SKU_ABUELO": "bad id"}], self.mapping)

        assert not result.success
        assert result.xml_content is None
        assert result.stats.processed_rows == 0

    def test_unmapped_columns_warning(self):
        """Test unmapped columns are reported once."""
        rows = [
            {"SKU_ABUELO": "P1", "EXTRA": "x", "OTHER": "y"},
            {"SKU_ABUELO": "P2", "EXTRA": "x", "OTHER": "y"},
        ]

        result = self.orchestrator.convert_with_mapping(rows, self.mapping)

        assert result.success
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.row == 0
        assert warning.type == 'missing-data'
        assert 'EXTRA, OTHER' in warning.message

    def test_explicit_headers(self):
        """Test headers passed by the caller drive the unmapped check."""
        result = self.orchestrator.convert_with_mapping(
            [{"SKU_ABUELO": "P1"}], self.mapping, headers=["SKU_ABUELO", "NOTES"]
        )

        assert [w.message for w in result.warnings] == ["Unmapped columns (will be ignored): NOTES"]

    def test_empty_input(self):
        """Test converting no rows."""
        result = self.orchestrator.convert_with_mapping([], self.mapping)

        assert result.success
        assert result.xml_content is None
        assert result.stats.total_rows == 0

    def test_configuration_not_found(self):
        """Test a missing company mapping fails the conversion."""
        rows = [{"SKU_ABUELO": "P1"}, {"SKU_ABUELO": "P2"}]

        result = self.orchestrator.convert(rows, "UnknownCo")

        assert not result.success
        assert result.xml_content is None
        assert len(result.errors) == 1
        assert result.errors[0].row == -1
        assert result.errors[0].type == 'mapping'
        assert result.stats.total_rows == 2
        assert result.stats.processed_rows == 0

    def test_malformed_configuration(self):
        """Test a mapping file with a bad shape fails the conversion instead of raising."""
        company_dir = Path(self.temp_dir.name) / "BrokenCo"
        company_dir.mkdir()
        (company_dir / "catalog.json").write_text(json.dumps({
            "companyName": "BrokenCo",
            "catalog": {"catalogId": "broken-catalog"},
            "columnMappings": {"product-id": {"objectAttribute": "productId"}},
            "headerMappings": {"product-id": "SKU_ABUELO"},
            "variationSettings": {
                "enabled": True,
                "masterIdColumn": "SKU_ABUELO",
                "variantIdColumn": "SKU",
                "attributes": [{"attributeId": "color", "sourceColumn": "COLOR", "sortOrder": "first"}]
            }
        }), encoding="utf-8")

        result = self.orchestrator.convert([{"SKU_ABUELO": "P1"}], "BrokenCo")

        assert not result.success
        assert result.xml_content is None
        assert len(result.errors) == 1
        assert result.errors[0].row == -1
        assert result.errors[0].type == 'mapping'
        assert result.stats.processed_rows == 0
        assert result.stats.skipped_rows == 1

    def test_convert_with_bundled_company(self):
        """Test grouping SKU rows into masters with a bundled company mapping."""
        orchestrator = ConversionOrchestrator()
        rows = [
            {"SKU_ABUELO": "M1", "SKU": "M1-42-RED", "NOMBRE_PROD": "Runner", "MARCA": "Typhoon",
             "DEPORTE": "Running", "GENERO": "M", "COLOR": "Red", "TALLA": "42", "EAN": "7501234567890",
             "ACTIVO": "si", "CATEGORIA": "running-shoes"},
            {"SKU_ABUELO": "M1", "SKU": "M1-43-BLUE", "NOMBRE_PROD": "Runner", "MARCA": "Typhoon",
             "DEPORTE": "Running", "GENERO": "M", "COLOR": "Blue", "TALLA": "43", "EAN": "7501234567891",
             "ACTIVO": "si", "CATEGORIA": "running-shoes"},
            {"SKU_ABUELO": "", "SKU": "ORPHAN"},
        ]

        result = orchestrator.convert(rows, "Typhoon")

        assert result.success
        assert result.stats.total_rows == 3
        assert result.stats.processed_rows == 1
        assert result.stats.skipped_rows == 1
        assert [w.row for w in result.warnings] == [3]

        xml = result.xml_content
        assert '<product product-id="M1">' in xml
        assert '<page-keywords>Typhoon, Running, M</page-keywords>' in xml
        assert '<classification-category catalog-id="typhoon-storefront">running-shoes</classification-category>' in xml
        assert '<ean>' not in xml
        assert '<image-settings>' in xml
        assert xml.index('attribute-id="color"') < xml.index('attribute-id="size"')
        assert '<variant product-id="M1-42-RED"/>' in xml
        assert '<variant product-id="M1-43-BLUE"/>' in xml

    def test_validate_single_product(self):
        """Test validating one row."""
        valid = self.orchestrator.validate_single_product({"SKU_ABUELO": "P1", "MARCA": "Acme"}, self.mapping)
        invalid = self.orchestrator.validate_single_product({"SKU_ABUELO": "bad id"}, self.mapping)

        assert valid['is_valid']
        assert valid['product'].product_id == 'P1'
        assert '<brand>Acme</brand>' in valid['xml_preview']
        assert not invalid['is_valid']
        assert invalid['product'] is None
        assert invalid['errors'][0].code == 'INVALID_CHARACTERS'

    def test_generate_preview(self):
        """Test previews cover the first rows only."""
        rows = [{"SKU_ABUELO": f"P{i}"} for i in range(1, 6)]

        preview = self.orchestrator.generate_preview(rows, self.mapping, max_items=2)

        assert '<product product-id="P1">' in preview
        assert '<product product-id="P2">' in preview
        assert 'P3' not in preview

    def test_generate_preview_without_valid_products(self):
        preview = self.orchestrator.generate_preview([{"SKU_ABUELO": ""}], self.mapping)

        assert preview == '<!-- No valid products to preview -->'

    def test_get_data_quality_stats(self):
        """Test the data quality report."""
        rows = [{"SKU_ABUELO": "P1", "MARCA": "Acme"}, {"SKU_ABUELO": "", "MARCA": ""}]

        report = self.orchestrator.get_data_quality_stats(rows, self.mapping)

        assert report['summary']['valid'] == 1
        assert report['summary']['invalid'] == 1
        assert report['field_stats']['brand'] == {'filled': 1, 'empty': 1}

    def test_result_to_dict(self):
        """Test the result serializes to plain data."""
        result = self.orchestrator.convert_with_mapping([{"SKU_ABUELO": "P1"}], self.mapping)
        data = result.to_dict()

        assert data['success'] is True
        assert data['stats'] == {'total_rows': 1, 'processed_rows': 1, 'skipped_rows': 0, 'validation_errors': 0}
        assert data['errors'] == []
