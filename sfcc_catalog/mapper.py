"""
Field Mapper Module
Resolves spreadsheet columns to product fields using a company mapping configuration.
"""

from typing import Dict, List, Any, Optional
from loguru import logger

from .config_loader import MappingConfiguration, FieldConfig
from .transformer import ValueTransformer, format_scalar, is_blank


LOCALIZED_PATHS = ('displayName', 'shortDescription', 'longDescription')
CUSTOM_ATTRIBUTES_PATH = 'customAttributes'
CLASSIFICATION_PATH = 'classificationCategory'
DEFAULT_LOCALE = 'x-default'
MULTIPLE_HEADER_SEPARATOR = ', '


def parse_path(path: str) -> List[str]:
    """
    Split a dot-notation target path into its keys.

    Args:
        path: Path such as "pageAttributes.pageKeywords"

    Returns:
        List of non-empty keys
    """
    return [key.strip() for key in path.split('.') if key.strip()]


def set_nested_value(
    record: Dict[str, Any],
    path: str,
    value: Any,
    config: FieldConfig,
    default_catalog_id: Optional[str] = None
) -> None:
    """
    Write a value into a nested product record, creating intermediate objects.

    Args:
        record: Product record being built
        path: Dot-notation target path
        value: Coerced value to write
        config: Configuration of the field being written
        default_catalog_id: Catalog id used for classification categories without an override
    """
    keys = parse_path(path)
    if not keys:
        return

    current = record
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    final_key = keys[-1]

    if path == CUSTOM_ATTRIBUTES_PATH:
        if not isinstance(current.get(final_key), list):
            current[final_key] = []
        current[final_key].append({'attributeId': config.key, 'value': value})
    elif any(name in path for name in LOCALIZED_PATHS):
        current[final_key] = {
            'value': format_scalar(value),
            'locale': config.locale or DEFAULT_LOCALE,
        }
    elif path == CLASSIFICATION_PATH:
        category = {'categoryId': format_scalar(value)}
        catalog_id = config.catalog_id or default_catalog_id
        if catalog_id:
            category['catalogId'] = catalog_id
        current[final_key] = category
    else:
        current[final_key] = value


class FieldMapper:
    """Map raw rows to nested product-data records."""

    def __init__(self, mapping: MappingConfiguration):
        """
        Initialize field mapper.

        Args:
            mapping: Company mapping configuration
        """
        self.mapping = mapping
        self.transformer = ValueTransformer(mapping)

    def map_row(self, source_row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map a single source row to a product-data record.

        Never raises on malformed input: blank cells are skipped, unmapped
        columns are ignored and uncoercible values pass through unchanged.

        Args:
            source_row: Dictionary representing a source row

        Returns:
            Nested dictionary consumable by ProductRecord.from_raw_data
        """
        product_data: Dict[str, Any] = {}
        populated = set()
        catalog_id = self.mapping.catalog.catalog_id

        # Single-header fields, in declaration order
        for key, config in self.mapping.field_configs.items():
            if config.multiple_header:
                continue

            for header in self.mapping.headers_for_field(key):
                if header not in source_row or is_blank(source_row[header]):
                    continue

                value = self.transformer.transform(source_row[header], config.data_type)
                populated.add(key)
                if config.object_attribute:
                    set_nested_value(product_data, config.object_attribute, value, config, catalog_id)

        # Defaults and concatenated fields
        for key, config in self.mapping.field_configs.items():
            if not config.object_attribute:
                continue

            if config.multiple_header:
                value = self._concatenate_headers(source_row, key)
                set_nested_value(product_data, config.object_attribute, value, config, catalog_id)
            elif key not in populated and config.has_default:
                set_nested_value(product_data, config.object_attribute, config.default_value, config, catalog_id)

        return product_data

    def _concatenate_headers(self, source_row: Dict[str, Any], key: str) -> str:
        """
        Join the values of every column feeding a multiple-header field.

        Args:
            source_row: Source row
            key: Field key

        Returns:
            Non-blank values in alias declaration order, joined with ", "
        """
        parts = []
        for header in self.mapping.headers_for_field(key):
            value = source_row.get(header)
            if not is_blank(value):
                parts.append(format_scalar(value).strip())
        return MULTIPLE_HEADER_SEPARATOR.join(parts)

    def map_rows(self, source_rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.map_row(row) for row in source_rows]

    def unmapped_headers(self, headers: List[str]) -> List[str]:
        """
        Get the columns no field of this mapping reads.

        Args:
            headers: Column names of the input file

        Returns:
            Unmapped column names in input order
        """
        known = set(self.mapping.known_headers())
        unmapped = [header for header in headers if header not in known]
        if unmapped:
            logger.warning(f"Unmapped columns will be ignored: {', '.join(unmapped)}")
        return unmapped

    def get_required_fields(self) -> List[str]:
        """
        Get list of required field keys from configuration.

        Returns:
            List of required field keys
        """
        return [key for key, config in self.mapping.field_configs.items() if config.required]
