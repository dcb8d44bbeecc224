"""
Mapping Configuration Module
Loads per-company mapping configurations and validates their shape once at load time.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple
from loguru import logger


DEFAULT_COMPANIES_DIR = Path(__file__).parent.parent / "config" / "companies"
DATA_TYPES = ('string', 'number', 'boolean', 'date')
DEFAULT_SORT_ORDER = 999


class ConfigurationError(Exception):
    """Raised when a mapping configuration cannot be loaded or is malformed."""


class ConfigurationNotFoundError(ConfigurationError):
    """Raised when no mapping configuration exists for a company/schema."""


@dataclass
class FieldConfig:
    """Configuration of one internal field key."""

    key: str
    object_attribute: Optional[str] = None
    data_type: str = 'string'
    required: bool = False
    default_value: Any = None
    locale: Optional[str] = None
    multiple_header: bool = False
    catalog_id: Optional[str] = None
    xml_element: Optional[str] = None
    description: str = ""

    @property
    def has_default(self) -> bool:
        return self.default_value is not None


@dataclass
class VariationAttributeConfig:
    """A variation attribute extracted from a source column."""

    attribute_id: str
    source_column: str
    display_name: str = ""
    sort_order: Optional[int] = None

    @property
    def effective_sort_order(self) -> int:
        return self.sort_order if self.sort_order is not None else DEFAULT_SORT_ORDER


@dataclass
class VariationSettings:
    """Rules for grouping SKU rows into master products."""

    enabled: bool = False
    master_id_column: str = ""
    variant_id_column: str = ""
    attributes: List[VariationAttributeConfig] = field(default_factory=list)
    master_fields: List[str] = field(default_factory=list)
    variant_fields: List[str] = field(default_factory=list)


@dataclass
class ImageSettings:
    """Catalog-level image settings emitted in the header block."""

    base_path: str
    view_types: List[str] = field(default_factory=list)
    variation_attribute_id: str = ""
    alt_pattern: str = ""
    title_pattern: str = ""


@dataclass
class CatalogHeader:
    """Catalog id, currency and locale defaults."""

    catalog_id: str
    default_currency: str = ""
    default_locale: str = ""
    image_settings: Optional[ImageSettings] = None


@dataclass
class BooleanVocabulary:
    """Lowercase tokens recognized as true/false."""

    true_values: List[str] = field(default_factory=list)
    false_values: List[str] = field(default_factory=list)


@dataclass
class MappingConfiguration:
    """
    Company mapping configuration.

    Immutable by convention once loaded: the cache hands the same instance
    to every conversion for the same company and schema.
    """

    company_name: str
    catalog: CatalogHeader
    field_configs: Dict[str, FieldConfig] = field(default_factory=dict)
    header_aliases: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    boolean_vocabulary: BooleanVocabulary = field(default_factory=BooleanVocabulary)
    currency_symbols: List[str] = field(default_factory=list)
    variation_settings: Optional[VariationSettings] = None
    schema: str = 'catalog'
    version: str = ""
    description: str = ""

    @property
    def variations_enabled(self) -> bool:
        return bool(self.variation_settings and self.variation_settings.enabled)

    def fields_for_header(self, header: str) -> List[str]:
        """
        Get every field key whose header alias equals the given column.

        Multiple-header fields are excluded; they are assembled separately.

        Args:
            header: External column name

        Returns:
            Field keys in field-config declaration order
        """
        matches = []
        for key, config in self.field_configs.items():
            if config.multiple_header:
                continue
            if header in self.header_aliases.get(key, ()):
                matches.append(key)
        return matches

    def headers_for_field(self, key: str) -> Tuple[str, ...]:
        return self.header_aliases.get(key, ())

    def known_headers(self) -> List[str]:
        """
        Get all column names this configuration understands.

        Returns:
            Field keys, header aliases and variation columns
        """
        known = list(self.field_configs.keys())
        for aliases in self.header_aliases.values():
            known.extend(aliases)
        if self.variation_settings:
            settings = self.variation_settings
            known.extend([settings.master_id_column, settings.variant_id_column])
            known.extend(attr.source_column for attr in settings.attributes)
        return [header for header in dict.fromkeys(known) if header]

    @classmethod
    def from_dict(cls, data: Dict[str, Any], schema: str = 'catalog') -> 'MappingConfiguration':
        """
        Build a configuration from its JSON representation.

        Args:
            data: Parsed mapping document
            schema: Schema name the document was loaded for

        Returns:
            Validated MappingConfiguration

        Raises:
            ConfigurationError: If the document shape is invalid
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Mapping configuration must be a JSON object")

        try:
            return cls._parse_document(data, schema)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed mapping configuration: {e}") from e

    @classmethod
    def _parse_document(cls, data: Dict[str, Any], schema: str) -> 'MappingConfiguration':
        company_name = data.get('companyName') or ""
        catalog = _parse_catalog(data.get('catalog') or {}, company_name)

        field_configs = {}
        for key, raw in (data.get('columnMappings') or {}).items():
            field_configs[key] = _parse_field_config(key, raw or {})

        header_aliases = {}
        for key, raw in (data.get('headerMappings') or {}).items():
            multiple = key in field_configs and field_configs[key].multiple_header
            header_aliases[key] = _parse_aliases(raw, multiple)

        transformations = data.get('transformations') or {}
        vocabulary = _parse_vocabulary(transformations.get('boolean') or {})
        currency_symbols = list((transformations.get('currency') or {}).get('removeSymbols', []))

        variation_settings = None
        if data.get('variationSettings'):
            variation_settings = _parse_variation_settings(data['variationSettings'])

        return cls(
            company_name=company_name,
            catalog=catalog,
            field_configs=field_configs,
            header_aliases=header_aliases,
            boolean_vocabulary=vocabulary,
            currency_symbols=currency_symbols,
            variation_settings=variation_settings,
            schema=schema,
            version=str(data.get('version', '')),
            description=data.get('description', ''),
        )


def _parse_catalog(raw: Dict[str, Any], company_name: str) -> CatalogHeader:
    catalog_id = raw.get('catalogId')
    if not catalog_id:
        raise ConfigurationError(f"Mapping for '{company_name}' has no catalog.catalogId")

    image_settings = None
    raw_images = raw.get('imageSettings')
    if raw_images:
        location = raw_images.get('internalLocation') or {}
        image_settings = ImageSettings(
            base_path=location.get('basePath', ''),
            view_types=list(raw_images.get('viewTypes', [])),
            variation_attribute_id=raw_images.get('variationAttributeId', ''),
            alt_pattern=raw_images.get('altPattern', ''),
            title_pattern=raw_images.get('titlePattern', ''),
        )

    return CatalogHeader(
        catalog_id=catalog_id,
        default_currency=raw.get('defaultCurrency', ''),
        default_locale=raw.get('defaultLocale', ''),
        image_settings=image_settings,
    )


def _parse_field_config(key: str, raw: Dict[str, Any]) -> FieldConfig:
    data_type = raw.get('dataType', 'string')
    if data_type not in DATA_TYPES:
        raise ConfigurationError(f"Field '{key}' has unknown dataType '{data_type}'")

    return FieldConfig(
        key=key,
        object_attribute=raw.get('objectAttribute'),
        data_type=data_type,
        required=bool(raw.get('required', False)),
        default_value=raw.get('defaultValue'),
        locale=raw.get('locale'),
        multiple_header=bool(raw.get('multipleHeader', False)),
        catalog_id=raw.get('catalogId'),
        xml_element=raw.get('xmlElement'),
        description=raw.get('description', ''),
    )


def _parse_aliases(raw: Any, multiple_header: bool) -> Tuple[str, ...]:
    if isinstance(raw, (list, tuple)):
        headers = [str(h).strip() for h in raw]
    elif multiple_header:
        headers = [h.strip() for h in str(raw).split(',')]
    else:
        headers = [str(raw).strip()]
    return tuple(h for h in headers if h)


def _parse_vocabulary(raw: Dict[str, Any]) -> BooleanVocabulary:
    true_values = [str(v).lower().strip() for v in raw.get('true', [])]
    false_values = [str(v).lower().strip() for v in raw.get('false', [])]

    overlap = set(true_values) & set(false_values)
    if overlap:
        raise ConfigurationError(f"Boolean vocabularies overlap: {', '.join(sorted(overlap))}")

    return BooleanVocabulary(true_values=true_values, false_values=false_values)


def _parse_variation_settings(raw: Dict[str, Any]) -> VariationSettings:
    attributes = []
    for attr in raw.get('attributes', []):
        if not attr.get('attributeId') or not attr.get('sourceColumn'):
            raise ConfigurationError("Variation attributes need attributeId and sourceColumn")
        sort_order = attr.get('sortOrder')
        attributes.append(VariationAttributeConfig(
            attribute_id=attr['attributeId'],
            source_column=attr['sourceColumn'],
            display_name=attr.get('displayName', ''),
            sort_order=int(sort_order) if sort_order is not None else None,
        ))

    settings = VariationSettings(
        enabled=bool(raw.get('enabled', False)),
        master_id_column=raw.get('masterIdColumn', ''),
        variant_id_column=raw.get('variantIdColumn', ''),
        attributes=attributes,
        master_fields=list(raw.get('masterFields', [])),
        variant_fields=list(raw.get('variantFields', [])),
    )

    if settings.enabled and not (settings.master_id_column and settings.variant_id_column):
        raise ConfigurationError("Enabled variation settings need masterIdColumn and variantIdColumn")

    return settings


class MappingConfigCache:
    """
    Load company mapping configurations and keep them for the process lifetime.

    Entries are keyed by (company, schema) and never evicted. Loaded
    configurations are shared read-only between conversions.
    """

    def __init__(self, companies_dir: Optional[str] = None):
        """
        Initialize the cache.

        Args:
            companies_dir: Directory holding <Company>/<schema>.json files
        """
        self.companies_dir = Path(companies_dir) if companies_dir else DEFAULT_COMPANIES_DIR
        self._loaded: Dict[Tuple[str, str], MappingConfiguration] = {}

    def load_company_mapping(self, company_name: str, schema: str = 'catalog') -> MappingConfiguration:
        """
        Get the mapping for a company, loading it on first use.

        Args:
            company_name: Company directory name
            schema: Schema name (catalog, pricebook, ...)

        Returns:
            Cached MappingConfiguration

        Raises:
            ConfigurationNotFoundError: If no mapping file exists
            ConfigurationError: If the mapping file is invalid
        """
        cache_key = (company_name, schema)
        if cache_key in self._loaded:
            return self._loaded[cache_key]

        config_path = self.companies_dir / company_name / f"{schema}.json"
        if not company_name or not config_path.exists():
            raise ConfigurationNotFoundError(
                f"Could not load the {schema} configuration for company '{company_name}'"
            )

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in mapping config {config_path}: {e}")
            raise ConfigurationError(f"Invalid mapping configuration for '{company_name}': {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read mapping config {config_path}: {e}")
            raise ConfigurationError(f"Could not read mapping configuration for '{company_name}': {e}") from e

        mapping = MappingConfiguration.from_dict(data, schema=schema)
        if not mapping.company_name:
            mapping.company_name = company_name

        self._loaded[cache_key] = mapping
        logger.info(f"Loaded {schema} mapping for {company_name} from {config_path}")
        return mapping

    def available_companies(self) -> List[str]:
        """
        List companies that ship at least one mapping file.

        Returns:
            Sorted company names
        """
        if not self.companies_dir.exists():
            logger.warning(f"Company config directory not found: {self.companies_dir}")
            return []
        return sorted(
            path.name for path in self.companies_dir.iterdir()
            if path.is_dir() and any(path.glob('*.json'))
        )

    def __contains__(self, cache_key: Tuple[str, str]) -> bool:
        return cache_key in self._loaded
