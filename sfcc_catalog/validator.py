"""
Data Validator Module
Field-level business rules for catalog products, plus data quality reporting.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, TYPE_CHECKING
from loguru import logger

from .transformer import is_blank, parse_date

if TYPE_CHECKING:
    from .config_loader import MappingConfiguration
    from .models import ProductRecord


PRODUCT_ID_MAX_LENGTH = 100
PRODUCT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
DIGITS_PATTERN = re.compile(r'^[0-9]+$')


@dataclass
class ValidationError:
    field: str
    message: str
    code: str


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)

    def messages(self) -> List[str]:
        return [f"{error.field}: {error.message}" for error in self.errors]


@dataclass
class InvalidProduct:
    """A product that failed validation, with its position in the validated sequence."""

    index: int
    product: 'ProductRecord'
    errors: List[str]


@dataclass
class PartitionResult:
    valid: List['ProductRecord'] = field(default_factory=list)
    invalid: List[InvalidProduct] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class ProductValidator:
    """Validate products before they are written to the catalog."""

    def validate(self, product: 'ProductRecord') -> ValidationResult:
        """
        Validate a product record.

        Pure: reads the record and never modifies it. Violations accumulate.

        Args:
            product: Product to validate

        Returns:
            ValidationResult with every violation found
        """
        errors: List[ValidationError] = []

        self._validate_product_id(product.product_id, errors)

        if not is_blank(product.ean):
            ean = re.sub(r'\s+', '', str(product.ean))
            if not DIGITS_PATTERN.match(ean) or not 8 <= len(ean) <= 14:
                errors.append(ValidationError(
                    'ean', 'EAN must contain 8 to 14 digits', 'INVALID_EAN'
                ))

        if not is_blank(product.upc):
            upc = re.sub(r'\s+', '', str(product.upc))
            if not DIGITS_PATTERN.match(upc) or len(upc) != 12:
                errors.append(ValidationError(
                    'upc', 'UPC must contain exactly 12 digits', 'INVALID_UPC'
                ))

        if product.min_order_quantity is not None:
            if not _is_number(product.min_order_quantity) or product.min_order_quantity < 0:
                errors.append(ValidationError(
                    'minOrderQuantity', 'Minimum order quantity must be a number >= 0',
                    'INVALID_MIN_ORDER_QUANTITY'
                ))

        if product.step_quantity is not None:
            if not _is_number(product.step_quantity) or product.step_quantity <= 0:
                errors.append(ValidationError(
                    'stepQuantity', 'Step quantity must be a number > 0', 'INVALID_STEP_QUANTITY'
                ))

        if product.sitemap_priority is not None:
            if not _is_number(product.sitemap_priority) or not 0 <= product.sitemap_priority <= 1:
                errors.append(ValidationError(
                    'sitemapPriority', 'Sitemap priority must be between 0 and 1',
                    'INVALID_SITEMAP_PRIORITY'
                ))

        if not is_blank(product.online_from) and parse_date(product.online_from) is None:
            errors.append(ValidationError(
                'onlineFrom', f"Invalid date: {product.online_from}", 'INVALID_DATE'
            ))

        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    def _validate_product_id(self, product_id: Optional[str], errors: List[ValidationError]) -> None:
        """
        Check the product id. At most one error is reported.

        Args:
            product_id: Product id to check
            errors: Error list to append to
        """
        if not product_id or product_id.strip() == '':
            errors.append(ValidationError('productId', 'Product ID is required', 'REQUIRED_FIELD'))
        elif len(product_id) > PRODUCT_ID_MAX_LENGTH:
            errors.append(ValidationError(
                'productId', f'Product ID cannot exceed {PRODUCT_ID_MAX_LENGTH} characters',
                'MAX_LENGTH_EXCEEDED'
            ))
        elif not PRODUCT_ID_PATTERN.match(product_id):
            errors.append(ValidationError(
                'productId', 'Product ID may only contain letters, digits, hyphens and underscores',
                'INVALID_CHARACTERS'
            ))

    def validate_products(self, products: List['ProductRecord']) -> PartitionResult:
        """
        Split products into valid and invalid, keeping their relative order.

        Args:
            products: Products to validate

        Returns:
            PartitionResult
        """
        result = PartitionResult()
        for index, product in enumerate(products):
            validation = product.validate()
            if validation.is_valid:
                result.valid.append(product)
            else:
                result.invalid.append(InvalidProduct(index, product, validation.messages()))
        return result

    def generate_quality_report(
        self,
        rows: List[Dict[str, Any]],
        mapping: 'MappingConfiguration',
        products: List['ProductRecord']
    ) -> Dict[str, Any]:
        """
        Generate a data quality report.

        Args:
            rows: Source rows
            mapping: Mapping configuration used for the conversion
            products: Products built from the rows

        Returns:
            Report dictionary
        """
        partition = self.validate_products(products)

        errors_by_type: Dict[str, int] = {}
        for item in partition.invalid:
            for error in item.errors:
                errors_by_type[error] = errors_by_type.get(error, 0) + 1

        field_stats: Dict[str, Dict[str, int]] = {}
        missing_required: Dict[str, int] = {}
        for key, config in mapping.field_configs.items():
            headers = mapping.headers_for_field(key)
            if not headers:
                continue
            stats = {'filled': 0, 'empty': 0}
            for row in rows:
                if any(not is_blank(row.get(header)) for header in headers):
                    stats['filled'] += 1
                else:
                    stats['empty'] += 1
            field_stats[key] = stats
            if config.required and stats['empty'] and not config.has_default:
                missing_required[key] = stats['empty']

        total = len(products)
        report = {
            'summary': {
                'total': total,
                'valid': len(partition.valid),
                'invalid': len(partition.invalid),
                'validation_rate': round(len(partition.valid) / total * 100) if total else 0,
            },
            'errors_by_type': errors_by_type,
            'field_stats': field_stats,
            'missing_required': missing_required,
            'valid_products': [
                {
                    'product_id': product.product_id,
                    'display_name': product.display_name.value if product.display_name else None,
                    'brand': product.brand,
                }
                for product in partition.valid[:5]
            ],
        }

        logger.info(
            f"Data quality: {report['summary']['valid']}/{total} valid "
            f"({report['summary']['validation_rate']}%)"
        )
        return report
