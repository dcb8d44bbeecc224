"""
Conversion Orchestrator Module
Coordinates field resolution, grouping, validation and catalog generation.
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from loguru import logger

from .catalog import CatalogWriter
from .config_loader import MappingConfigCache, MappingConfiguration, ConfigurationError
from .grouping import VariantGrouper
from .mapper import FieldMapper
from .models import ProductRecord
from .validator import ProductValidator


@dataclass
class ConversionError:
    row: int
    message: str
    type: str
    column: Optional[str] = None
    field: Optional[str] = None


@dataclass
class ConversionWarning:
    row: int
    message: str
    type: str
    column: Optional[str] = None
    field: Optional[str] = None


@dataclass
class ConversionStats:
    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0
    validation_errors: int = 0


@dataclass
class ConversionResult:
    """Outcome of one conversion. Not modified after it is returned."""

    success: bool
    xml_content: Optional[str] = None
    errors: List[ConversionError] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)
    stats: ConversionStats = field(default_factory=ConversionStats)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (e.g. for JSON output)."""
        return asdict(self)


class ConversionOrchestrator:
    """Orchestrate the conversion of rows into a catalog document."""

    def __init__(self, config_cache: Optional[MappingConfigCache] = None, show_progress: bool = False):
        """
        Initialize conversion orchestrator.

        Args:
            config_cache: Cache of company mapping configurations
            show_progress: Show progress bars while grouping
        """
        self.config_cache = config_cache or MappingConfigCache()
        self.show_progress = show_progress
        self.validator = ProductValidator()

    def convert(
        self,
        rows: List[Dict[str, Any]],
        company_name: str,
        schema: str = 'catalog',
        headers: Optional[List[str]] = None
    ) -> ConversionResult:
        """
        Convert rows to a catalog using a company's mapping configuration.

        A configuration that cannot be loaded yields a failed result with a
        single error and no processed rows.

        Args:
            rows: Source rows
            company_name: Company whose mapping is used
            schema: Mapping schema name
            headers: Column names of the source file (defaults to the first row's keys)

        Returns:
            ConversionResult
        """
        try:
            mapping = self.config_cache.load_company_mapping(company_name, schema)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return ConversionResult(
                success=False,
                errors=[ConversionError(row=-1, message=f"Configuration error: {e}", type='mapping')],
                stats=ConversionStats(
                    total_rows=len(rows),
                    processed_rows=0,
                    skipped_rows=len(rows),
                    validation_errors=0,
                ),
            )

        return self.convert_with_mapping(rows, mapping, headers)

    def convert_with_mapping(
        self,
        rows: List[Dict[str, Any]],
        mapping: MappingConfiguration,
        headers: Optional[List[str]] = None
    ) -> ConversionResult:
        """
        Convert rows to a catalog using an already loaded mapping.

        Args:
            rows: Source rows
            mapping: Mapping configuration
            headers: Column names of the source file (defaults to the first row's keys)

        Returns:
            ConversionResult; xml_content holds the valid products even when errors exist
        """
        start_time = time.perf_counter()
        errors: List[ConversionError] = []
        warnings: List[ConversionWarning] = []

        mapper = FieldMapper(mapping)

        # Unmapped columns are reported once per conversion
        if headers is None:
            headers = list(rows[0].keys()) if rows else []
        unmapped = mapper.unmapped_headers(headers)
        if unmapped:
            warnings.append(ConversionWarning(
                row=0,
                message=f"Unmapped columns (will be ignored): {', '.join(unmapped)}",
                type='missing-data',
            ))

        logger.info(f"Processing {len(rows)} rows for {mapping.company_name}...")
        grouping = VariantGrouper(mapping, mapper, show_progress=self.show_progress).group(rows)

        for row_number in grouping.dropped_rows:
            warnings.append(ConversionWarning(
                row=row_number,
                column=mapping.variation_settings.master_id_column,
                message="Row has no master identifier and was not grouped",
                type='missing-data',
            ))

        logger.info("Validating products...")
        partition = self.validator.validate_products(grouping.records)
        for invalid in partition.invalid:
            row_number = grouping.products[invalid.index][0]
            errors.append(ConversionError(
                row=row_number,
                column='product-id',
                field='product',
                message=', '.join(invalid.errors),
                type='validation',
            ))

        xml_content = None
        if partition.valid:
            logger.info(f"Generating XML for {len(partition.valid)} valid products...")
            xml_content = CatalogWriter(mapping.catalog).generate(partition.valid)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Conversion finished in {elapsed_ms:.2f}ms")

        result = ConversionResult(
            success=len(errors) == 0,
            xml_content=xml_content,
            errors=errors,
            warnings=warnings,
            stats=ConversionStats(
                total_rows=len(rows),
                processed_rows=len(partition.valid),
                skipped_rows=len(partition.invalid) + len(grouping.dropped_rows),
                validation_errors=len(partition.invalid),
            ),
        )
        self._log_summary(result)
        return result

    def validate_single_product(self, row: Dict[str, Any], mapping: MappingConfiguration) -> Dict[str, Any]:
        """
        Build and validate the product of a single row.

        Args:
            row: Source row
            mapping: Mapping configuration

        Returns:
            Dictionary with is_valid, product, errors and xml_preview
        """
        data = FieldMapper(mapping).map_row(row)
        product = ProductRecord.from_raw_data(data, mapping.catalog.catalog_id)
        validation = product.validate()

        return {
            'is_valid': validation.is_valid,
            'product': product if validation.is_valid else None,
            'errors': validation.errors,
            'xml_preview': product.to_xml(indent='  ') if validation.is_valid else None,
        }

    def generate_preview(
        self,
        rows: List[Dict[str, Any]],
        mapping: MappingConfiguration,
        max_items: int = 3
    ) -> str:
        """
        Generate a catalog preview from the first rows.

        Args:
            rows: Source rows
            mapping: Mapping configuration
            max_items: Number of rows to preview

        Returns:
            Catalog XML, or an XML comment when no previewed product is valid
        """
        grouping = VariantGrouper(mapping).group(rows[:max_items])
        partition = self.validator.validate_products(grouping.records)

        if not partition.valid:
            return '<!-- No valid products to preview -->'

        return CatalogWriter(mapping.catalog).generate(partition.valid)

    def get_data_quality_stats(self, rows: List[Dict[str, Any]], mapping: MappingConfiguration) -> Dict[str, Any]:
        """
        Analyze how well rows fill the mapping and how many products validate.

        Args:
            rows: Source rows
            mapping: Mapping configuration

        Returns:
            Data quality report dictionary
        """
        grouping = VariantGrouper(mapping).group(rows)
        return self.validator.generate_quality_report(rows, mapping, grouping.records)

    def _log_summary(self, result: ConversionResult) -> None:
        """
        Log conversion summary.

        Args:
            result: Conversion result
        """
        stats = result.stats
        logger.info("=" * 60)
        logger.info("CONVERSION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Total source rows: {stats.total_rows}")
        logger.info(f"Products written: {stats.processed_rows}")
        logger.info(f"Skipped: {stats.skipped_rows}")
        logger.info(f"Validation errors: {stats.validation_errors}")
        logger.info(f"Warnings: {len(result.warnings)}")
        logger.info("=" * 60)
