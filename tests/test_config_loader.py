"""
Tests for Mapping Configuration Module
"""

import json
import tempfile
from pathlib import Path

import pytest
from sfcc_catalog.config_loader import (
    MappingConfiguration,
    MappingConfigCache,
    ConfigurationError,
    ConfigurationNotFoundError,
)


MINIMAL_MAPPING = {
    "companyName": "Acme",
    "catalog": {"catalogId": "acme-catalog", "defaultCurrency": "EUR", "defaultLocale": "de_DE"},
    "columnMappings": {
        "product-id": {"objectAttribute": "productId", "required": True},
        "brand": {"objectAttribute": "brand"}
    },
    "headerMappings": {"product-id": ["Product ID", "SKU"], "brand": "Brand"}
}


def write_mapping(companies_dir: Path, company: str, data, schema: str = "catalog") -> Path:
    company_dir = companies_dir / company
    company_dir.mkdir(parents=True, exist_ok=True)
    path = company_dir / f"{schema}.json"
    if isinstance(data, str):
        path.write_text(data, encoding="utf-8")
    else:
        path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestMappingConfiguration:
    """Test cases for MappingConfiguration parsing."""

    def test_from_dict(self):
        """Test parsing a minimal mapping."""
        mapping = MappingConfiguration.from_dict(MINIMAL_MAPPING)

        assert mapping.company_name == "Acme"
        assert mapping.catalog.catalog_id == "acme-catalog"
        assert mapping.catalog.default_currency == "EUR"
        assert mapping.catalog.image_settings is None
        assert list(mapping.field_configs) == ["product-id", "brand"]
        assert mapping.field_configs["product-id"].required
        assert mapping.field_configs["brand"].data_type == "string"
        assert mapping.headers_for_field("product-id") == ("Product ID", "SKU")
        assert not mapping.variations_enabled

    def test_multiple_header_aliases_split(self):
        """Test comma-separated aliases split only for multiple-header fields."""
        data = dict(MINIMAL_MAPPING)
        data["columnMappings"] = {
            "page-keywords": {"objectAttribute": "pageAttributes.pageKeywords", "multipleHeader": True},
            "brand": {"objectAttribute": "brand"}
        }
        data["headerMappings"] = {"page-keywords": "MARCA, DEPORTE,GENERO", "brand": "Brand, Name"}

        mapping = MappingConfiguration.from_dict(data)

        assert mapping.headers_for_field("page-keywords") == ("MARCA", "DEPORTE", "GENERO")
        assert mapping.headers_for_field("brand") == ("Brand, Name",)

    def test_fields_for_header(self):
        """Test reverse lookup of fields aliased to a column."""
        data = dict(MINIMAL_MAPPING)
        data["columnMappings"] = {
            "display-name": {"objectAttribute": "displayName"},
            "page-title": {"objectAttribute": "pageAttributes.pageTitle"},
            "page-keywords": {"objectAttribute": "pageAttributes.pageKeywords", "multipleHeader": True}
        }
        data["headerMappings"] = {
            "display-name": "NOMBRE",
            "page-title": "NOMBRE",
            "page-keywords": "NOMBRE,MARCA"
        }

        mapping = MappingConfiguration.from_dict(data)

        assert mapping.fields_for_header("NOMBRE") == ["display-name", "page-title"]
        assert mapping.fields_for_header("OTHER") == []

    def test_known_headers(self):
        """Test known headers include keys, aliases and variation columns."""
        data = dict(MINIMAL_MAPPING)
        data["variationSettings"] = {
            "enabled": True,
            "masterIdColumn": "MASTER",
            "variantIdColumn": "SKU",
            "attributes": [{"attributeId": "color", "sourceColumn": "COLOR"}]
        }

        known = MappingConfiguration.from_dict(data).known_headers()

        assert known == ["product-id", "brand", "Product ID", "SKU", "Brand", "MASTER", "COLOR"]

    def test_variation_settings(self):
        """Test variation settings parsing."""
        data = dict(MINIMAL_MAPPING)
        data["variationSettings"] = {
            "enabled": True,
            "masterIdColumn": "MASTER",
            "variantIdColumn": "SKU",
            "attributes": [
                {"attributeId": "size", "sourceColumn": "TALLA", "sortOrder": "2"},
                {"attributeId": "color", "sourceColumn": "COLOR"}
            ],
            "masterFields": ["brand"]
        }

        mapping = MappingConfiguration.from_dict(data)
        settings = mapping.variation_settings

        assert mapping.variations_enabled
        assert settings.attributes[0].sort_order == 2
        assert settings.attributes[1].effective_sort_order == 999
        assert settings.master_fields == ["brand"]
        assert settings.variant_fields == []

    def test_missing_catalog_id(self):
        """Test a mapping without catalog id is rejected."""
        data = dict(MINIMAL_MAPPING)
        data["catalog"] = {"defaultCurrency": "EUR"}

        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(data)

    def test_unknown_data_type(self):
        """Test unknown data types are rejected at load time."""
        data = dict(MINIMAL_MAPPING)
        data["columnMappings"] = {"brand": {"objectAttribute": "brand", "dataType": "money"}}

        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(data)

    def test_overlapping_boolean_vocabulary(self):
        """Test a token may not be both true and false."""
        data = dict(MINIMAL_MAPPING)
        data["transformations"] = {"boolean": {"true": ["yes", "1"], "false": ["no", "YES"]}}

        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(data)

    def test_enabled_variations_need_columns(self):
        """Test enabled variation settings need master and variant columns."""
        data = dict(MINIMAL_MAPPING)
        data["variationSettings"] = {"enabled": True, "masterIdColumn": "MASTER"}

        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(data)

    @pytest.mark.parametrize("overrides", [
        {"columnMappings": {"brand": "brand"}},
        {"catalog": "acme-catalog"},
        {"variationSettings": {
            "enabled": True, "masterIdColumn": "MASTER", "variantIdColumn": "SKU",
            "attributes": ["color"]
        }},
        {"variationSettings": {
            "enabled": True, "masterIdColumn": "MASTER", "variantIdColumn": "SKU",
            "attributes": [{"attributeId": "color", "sourceColumn": "COLOR", "sortOrder": "first"}]
        }},
    ])
    def test_malformed_shapes(self, overrides):
        """Test malformed sections are reported as configuration errors."""
        data = dict(MINIMAL_MAPPING)
        data.update(overrides)

        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(ConfigurationError):
            MappingConfiguration.from_dict(["not", "a", "mapping"])


class TestMappingConfigCache:
    """Test cases for MappingConfigCache."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.companies_dir = Path(self.temp_dir.name)
        self.cache = MappingConfigCache(str(self.companies_dir))

    def teardown_method(self):
        """Clean up temporary directory."""
        self.temp_dir.cleanup()

    def test_load_company_mapping(self):
        """Test loading a company mapping from disk."""
        write_mapping(self.companies_dir, "Acme", MINIMAL_MAPPING)

        mapping = self.cache.load_company_mapping("Acme")

        assert mapping.company_name == "Acme"
        assert mapping.schema == "catalog"
        assert ("Acme", "catalog") in self.cache

    def test_cache_reuses_loaded_mapping(self):
        """Test repeated loads return the same instance without rereading."""
        path = write_mapping(self.companies_dir, "Acme", MINIMAL_MAPPING)

        first = self.cache.load_company_mapping("Acme")
        path.unlink()
        second = self.cache.load_company_mapping("Acme")

        assert first is second

    def test_cache_keyed_by_schema(self):
        """Test each schema of a company is loaded separately."""
        write_mapping(self.companies_dir, "Acme", MINIMAL_MAPPING)
        write_mapping(self.companies_dir, "Acme", MINIMAL_MAPPING, schema="pricebook")

        catalog = self.cache.load_company_mapping("Acme")
        pricebook = self.cache.load_company_mapping("Acme", "pricebook")

        assert catalog is not pricebook
        assert pricebook.schema == "pricebook"

    def test_company_name_defaults_to_directory(self):
        """Test mappings without companyName take the directory name."""
        data = dict(MINIMAL_MAPPING)
        del data["companyName"]
        write_mapping(self.companies_dir, "Globex", data)

        assert self.cache.load_company_mapping("Globex").company_name == "Globex"

    def test_unknown_company(self):
        """Test a missing mapping raises ConfigurationNotFoundError."""
        with pytest.raises(ConfigurationNotFoundError):
            self.cache.load_company_mapping("Nobody")
        assert ("Nobody", "catalog") not in self.cache

    def test_invalid_json(self):
        """Test malformed JSON raises ConfigurationError."""
        write_mapping(self.companies_dir, "Broken", "{not json")

        with pytest.raises(ConfigurationError):
            self.cache.load_company_mapping("Broken")

    def test_available_companies(self):
        """Test listing companies that ship mapping files."""
        write_mapping(self.companies_dir, "Zeta", MINIMAL_MAPPING)
        write_mapping(self.companies_dir, "Acme", MINIMAL_MAPPING)
        (self.companies_dir / "Empty").mkdir()

        assert self.cache.available_companies() == ["Acme", "Zeta"]

    def test_bundled_companies(self):
        """Test the bundled company mappings load."""
        cache = MappingConfigCache()

        typhoon = cache.load_company_mapping("Typhoon")
        example = cache.load_company_mapping("ExampleCorp")

        assert typhoon.variations_enabled
        assert typhoon.catalog.image_settings is not None
        assert not example.variations_enabled
        assert "Typhoon" in cache.available_companies()
