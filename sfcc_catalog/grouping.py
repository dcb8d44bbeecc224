"""
Variant Grouping Module
Groups flat SKU rows into master products with variation attributes and variants.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Tuple
from loguru import logger
from tqdm import tqdm

from .config_loader import MappingConfiguration, VariationSettings
from .mapper import FieldMapper, DEFAULT_LOCALE
from .models import (
    ProductRecord,
    ProductVariant,
    ProductVariations,
    VariationAttribute,
    VariationAttributeValue,
    LocalizedString,
)
from .transformer import format_scalar, is_blank


@dataclass
class GroupingResult:
    """Products built from the input rows, keyed by the row number that produced them."""

    products: List[Tuple[int, ProductRecord]] = field(default_factory=list)
    dropped_rows: List[int] = field(default_factory=list)

    @property
    def records(self) -> List[ProductRecord]:
        return [product for _, product in self.products]


def _is_present(value: Any) -> bool:
    return not is_blank(value) and bool(value)


class VariantGrouper:
    """Build master products from rows sharing a master identifier."""

    def __init__(
        self,
        mapping: MappingConfiguration,
        mapper: Optional[FieldMapper] = None,
        show_progress: bool = False
    ):
        """
        Initialize variant grouper.

        Args:
            mapping: Mapping configuration with optional variation settings
            mapper: Field mapper to reuse (one is created when omitted)
            show_progress: Show a tqdm progress bar while building masters
        """
        self.mapping = mapping
        self.mapper = mapper or FieldMapper(mapping)
        self.show_progress = show_progress

    @property
    def settings(self) -> Optional[VariationSettings]:
        return self.mapping.variation_settings

    def group(self, rows: List[Dict[str, Any]]) -> GroupingResult:
        """
        Turn rows into products.

        With variation settings enabled, rows are grouped by the master id
        column (first-seen order) and each group becomes one master product.
        Rows without a master id are dropped. Otherwise every row becomes its
        own product.

        Args:
            rows: Source rows

        Returns:
            GroupingResult
        """
        result = GroupingResult()
        catalog_id = self.mapping.catalog.catalog_id

        if not self.mapping.variations_enabled:
            for row_number, row in enumerate(rows, start=1):
                data = self.mapper.map_row(row)
                result.products.append((row_number, ProductRecord.from_raw_data(data, catalog_id)))
            return result

        groups: Dict[str, List[Tuple[int, Dict[str, Any]]]] = {}
        for row_number, row in enumerate(rows, start=1):
            master_id = format_scalar(row.get(self.settings.master_id_column)).strip()
            if not master_id:
                result.dropped_rows.append(row_number)
                continue
            groups.setdefault(master_id, []).append((row_number, row))

        logger.info(f"Grouped {len(rows)} rows into {len(groups)} master products")

        for master_id, members in tqdm(
            groups.items(), total=len(groups), desc="Grouping", disable=not self.show_progress
        ):
            group_rows = [row for _, row in members]
            result.products.append((members[0][0], self.build_master(master_id, group_rows)))

        if result.dropped_rows:
            logger.warning(
                f"{len(result.dropped_rows)} rows have no '{self.settings.master_id_column}' value "
                f"and were not grouped"
            )

        return result

    def build_master(self, master_id: str, rows: List[Dict[str, Any]]) -> ProductRecord:
        """
        Build one master product from the rows of its group.

        Args:
            master_id: Master identifier shared by the rows
            rows: Rows of the group, in input order

        Returns:
            ProductRecord with a variations extension
        """
        data = self.mapper.map_row(self._master_row(rows[0]))
        data['productId'] = master_id
        data['variationAttributes'] = self.extract_variation_attributes(rows)
        data['variants'] = self.extract_variants(rows)
        return ProductRecord.from_raw_data(data, self.mapping.catalog.catalog_id)

    def _master_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Restrict the representative row to master-level columns.

        Args:
            row: First row of a group

        Returns:
            Row holding only the columns of the master fields
        """
        settings = self.settings
        if settings.master_fields:
            allowed = set()
            for key in settings.master_fields:
                allowed.update(self.mapping.headers_for_field(key))
            return {column: value for column, value in row.items() if column in allowed}

        if settings.variant_fields:
            excluded = set()
            for key in settings.variant_fields:
                excluded.update(self.mapping.headers_for_field(key))
            return {column: value for column, value in row.items() if column not in excluded}

        return dict(row)

    def extract_variation_attributes(self, rows: List[Dict[str, Any]]) -> List[VariationAttribute]:
        """
        Collect the distinct values of every configured variation attribute.

        Attributes without any value are skipped. The result is sorted by
        sort order (unset sorts last), keeping configuration order on ties.

        Args:
            rows: Rows of one group

        Returns:
            Ordered variation attributes
        """
        extracted = []
        for attr_config in self.settings.attributes:
            values = list(dict.fromkeys(
                format_scalar(row.get(attr_config.source_column))
                for row in rows
                if _is_present(row.get(attr_config.source_column))
            ))
            if not values:
                continue

            attribute = VariationAttribute(
                attribute_id=attr_config.attribute_id,
                display_name=LocalizedString(
                    value=attr_config.display_name or attr_config.attribute_id,
                    locale=DEFAULT_LOCALE,
                ),
                values=[
                    VariationAttributeValue(
                        value=value,
                        display_value=LocalizedString(value=value, locale=DEFAULT_LOCALE),
                    )
                    for value in values
                ],
            )
            extracted.append((attr_config.effective_sort_order, attribute))

        extracted.sort(key=lambda item: item[0])
        return [attribute for _, attribute in extracted]

    def extract_variants(self, rows: List[Dict[str, Any]]) -> List[ProductVariant]:
        """
        Build the variants of a group, one per distinct variant id.

        Rows without a variant id are skipped. A repeated variant id replaces
        the earlier variant in place.

        Args:
            rows: Rows of one group

        Returns:
            Variants in first-seen order
        """
        variations = ProductVariations()
        for row in rows:
            variant_id = format_scalar(row.get(self.settings.variant_id_column)).strip()
            if not variant_id:
                logger.warning(
                    f"Row without '{self.settings.variant_id_column}' value skipped as variant"
                )
                continue

            variations.add_variant(ProductVariant(
                product_id=variant_id,
                attribute_values={
                    attr.attribute_id: format_scalar(row.get(attr.source_column))
                    for attr in self.settings.attributes
                },
            ))
        return variations.variants
