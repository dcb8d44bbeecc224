"""
Product Models
Typed catalog entries that validate themselves and serialize to Impex catalog XML.

A master product is a ProductRecord carrying a ProductVariations extension;
serialization adds the <variations> block only when that extension is present.
"""

import math
from dataclasses import dataclass, field, fields
from typing import Dict, List, Any, Optional

from .transformer import format_scalar, is_blank
from .validator import ProductValidator, ValidationResult


FLAG_TRUE = 'true'
FLAG_FALSE = 'false'


def escape_xml(text: Any) -> str:
    """
    Escape special characters for XML text and attribute values.

    Args:
        text: Value to escape

    Returns:
        Escaped string
    """
    return (
        format_scalar(text)
        .replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;')
        .replace("'", '&#39;')
    )


def kebab_case(name: str) -> str:
    return name.replace('_', '-')


@dataclass
class LocalizedString:
    value: str
    locale: Optional[str] = None


@dataclass
class CustomAttribute:
    attribute_id: str
    value: Any


@dataclass
class ClassificationCategory:
    category_id: str
    catalog_id: Optional[str] = None


@dataclass
class PageAttributes:
    page_title: Optional[str] = None
    page_description: Optional[str] = None
    page_keywords: Optional[str] = None
    page_url: Optional[str] = None


@dataclass
class StoreAttributes:
    force_price_flag: Any = None
    non_inventory_flag: Any = None
    non_revenue_flag: Any = None
    non_discountable_flag: Any = None


@dataclass
class VariationAttributeValue:
    value: str
    display_value: LocalizedString


@dataclass
class VariationAttribute:
    attribute_id: str
    display_name: LocalizedString
    values: List[VariationAttributeValue] = field(default_factory=list)


@dataclass
class ProductVariant:
    product_id: str
    attribute_values: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProductVariations:
    """Variation attributes and variants of a master product."""

    variation_attributes: List[VariationAttribute] = field(default_factory=list)
    variants: List[ProductVariant] = field(default_factory=list)

    def add_variation_attribute(self, attribute: VariationAttribute) -> None:
        """Add an attribute, replacing any attribute with the same id in place."""
        for index, existing in enumerate(self.variation_attributes):
            if existing.attribute_id == attribute.attribute_id:
                self.variation_attributes[index] = attribute
                return
        self.variation_attributes.append(attribute)

    def add_variant(self, variant: ProductVariant) -> None:
        """Add a variant, replacing any variant with the same product id in place."""
        for index, existing in enumerate(self.variants):
            if existing.product_id == variant.product_id:
                self.variants[index] = variant
                return
        self.variants.append(variant)

    def get_variation_values(self, attribute_id: str) -> List[str]:
        """
        Get the distinct values variants use for an attribute.

        Args:
            attribute_id: Variation attribute id

        Returns:
            Non-empty values in first-occurrence order
        """
        values = [variant.attribute_values.get(attribute_id) for variant in self.variants]
        return list(dict.fromkeys(value for value in values if value))

    @property
    def has_content(self) -> bool:
        return bool(self.variation_attributes) and bool(self.variants)


@dataclass
class ProductRecord:
    """
    One catalog entry.

    The product id cannot be reassigned after construction. Online, available
    and searchable flags hold the "true"/"false" tokens used in the XML.
    """

    product_id: str = ""
    display_name: Optional[LocalizedString] = None
    short_description: Optional[LocalizedString] = None
    long_description: Optional[LocalizedString] = None
    brand: Optional[str] = None
    online_flag: str = FLAG_TRUE
    available_flag: str = FLAG_TRUE
    searchable_flag: str = FLAG_TRUE
    tax_class_id: Optional[str] = None
    classification_category: Optional[ClassificationCategory] = None
    custom_attributes: List[CustomAttribute] = field(default_factory=list)
    ean: Optional[str] = None
    upc: Optional[str] = None
    unit: Optional[str] = None
    min_order_quantity: Any = None
    step_quantity: Any = None
    online_from: Optional[str] = None
    sitemap_included_flag: Any = None
    sitemap_changefrequency: Optional[str] = None
    sitemap_priority: Any = None
    page_attributes: PageAttributes = field(default_factory=PageAttributes)
    store_attributes: StoreAttributes = field(default_factory=StoreAttributes)
    manufacturer_sku: Optional[str] = None
    pinterest_enabled_flag: Any = None
    facebook_enabled_flag: Any = None
    variations: Optional[ProductVariations] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == 'product_id' and 'product_id' in self.__dict__:
            raise AttributeError("product_id cannot be changed after construction")
        super().__setattr__(name, value)

    @property
    def is_master(self) -> bool:
        return self.variations is not None

    def validate(self) -> ValidationResult:
        """
        Validate the product against field-level business rules.

        Returns:
            ValidationResult; the record is never modified
        """
        return ProductValidator().validate(self)

    def to_xml(self, include_xml_declaration: bool = False, indent: str = '  ') -> str:
        """
        Serialize the product to an Impex <product> element.

        Args:
            include_xml_declaration: Prefix the fragment with an XML declaration
            indent: Indentation unit for nested elements

        Returns:
            XML fragment text
        """
        xml = ''
        if include_xml_declaration:
            xml += '<?xml version="1.0" encoding="UTF-8"?>\n'

        lines = [f'<product product-id="{escape_xml(self.product_id)}">']
        lines.extend(self._product_lines(indent))
        if self.variations is not None and self.variations.has_content:
            lines.extend(self._variation_lines(indent))
        lines.append('</product>')

        return xml + '\n'.join(lines)

    def _product_lines(self, indent: str) -> List[str]:
        lines = []

        for tag, localized in (
            ('display-name', self.display_name),
            ('short-description', self.short_description),
            ('long-description', self.long_description),
        ):
            if localized:
                lines.append(f'{indent}<{tag}{_lang(localized)}>{escape_xml(localized.value)}</{tag}>')

        if self.brand:
            lines.append(_element(indent, 'brand', self.brand))

        # Flags already hold their XML token
        for tag, flag in (
            ('online-flag', self.online_flag),
            ('available-flag', self.available_flag),
            ('searchable-flag', self.searchable_flag),
        ):
            if flag:
                lines.append(f'{indent}<{tag}>{flag}</{tag}>')

        if self.tax_class_id:
            lines.append(_element(indent, 'tax-class-id', self.tax_class_id))

        if self.classification_category:
            category = self.classification_category
            catalog_attr = f' catalog-id="{escape_xml(category.catalog_id)}"' if category.catalog_id else ''
            lines.append(
                f'{indent}<classification-category{catalog_attr}>'
                f'{escape_xml(category.category_id)}</classification-category>'
            )

        custom = [
            attr for attr in self.custom_attributes
            if attr.attribute_id and not is_blank(attr.value)
        ]
        if custom:
            lines.append(f'{indent}<custom-attributes>')
            for attr in custom:
                lines.append(
                    f'{indent}{indent}<custom-attribute attribute-id="{escape_xml(attr.attribute_id)}">'
                    f'{escape_xml(attr.value)}</custom-attribute>'
                )
            lines.append(f'{indent}</custom-attributes>')

        for tag, value in (
            ('ean', self.ean),
            ('upc', self.upc),
            ('unit', self.unit),
            ('min-order-quantity', self.min_order_quantity),
            ('step-quantity', self.step_quantity),
            ('online-from', self.online_from),
            ('sitemap-included-flag', self.sitemap_included_flag),
            ('sitemap-changefrequency', self.sitemap_changefrequency),
            ('sitemap-priority', self.sitemap_priority),
        ):
            if not is_blank(value):
                lines.append(_element(indent, tag, value))

        lines.extend(_attribute_block(indent, 'page-attributes', self.page_attributes, skip_empty=True))
        lines.extend(_attribute_block(indent, 'store-attributes', self.store_attributes, skip_empty=False))

        for tag, value in (
            ('manufacturer-sku', self.manufacturer_sku),
            ('pinterest-enabled-flag', self.pinterest_enabled_flag),
            ('facebook-enabled-flag', self.facebook_enabled_flag),
        ):
            if not is_blank(value):
                lines.append(_element(indent, tag, value))

        return lines

    def _variation_lines(self, indent: str) -> List[str]:
        indent2 = indent * 2
        indent3 = indent * 3
        indent4 = indent * 4
        indent5 = indent * 5

        lines = [f'{indent}<variations>', f'{indent2}<attributes>']
        for attr in self.variations.variation_attributes:
            attribute_id = escape_xml(attr.attribute_id)
            lines.append(
                f'{indent3}<variation-attribute attribute-id="{attribute_id}" '
                f'variation-attribute-id="{attribute_id}">'
            )
            lines.append(
                f'{indent4}<display-name{_lang(attr.display_name)}>'
                f'{escape_xml(attr.display_name.value)}</display-name>'
            )
            lines.append(f'{indent4}<variation-attribute-values>')
            for value in attr.values:
                lines.append(
                    f'{indent5}<variation-attribute-value value="{escape_xml(value.value)}">'
                    f'<display-value{_lang(value.display_value)}>{escape_xml(value.display_value.value)}'
                    f'</display-value></variation-attribute-value>'
                )
            lines.append(f'{indent4}</variation-attribute-values>')
            lines.append(f'{indent3}</variation-attribute>')
        lines.append(f'{indent2}</attributes>')

        lines.append(f'{indent2}<variants>')
        for variant in self.variations.variants:
            lines.append(f'{indent3}<variant product-id="{escape_xml(variant.product_id)}"/>')
        lines.append(f'{indent2}</variants>')
        lines.append(f'{indent}</variations>')
        return lines

    @classmethod
    def from_raw_data(cls, data: Dict[str, Any], default_catalog_id: Optional[str] = None) -> 'ProductRecord':
        """
        Create a typed record from a resolved product-data dictionary.

        Args:
            data: Nested record produced by FieldMapper.map_row
            default_catalog_id: Catalog id for classification categories that carry none

        Returns:
            ProductRecord (with a variations extension when the data has variation keys)
        """
        product_id = data.get('productId', data.get('product-id'))

        variations = None
        if 'variationAttributes' in data or 'variants' in data:
            variations = _to_variations(data)

        page = data.get('pageAttributes') if isinstance(data.get('pageAttributes'), dict) else {}
        store = data.get('storeAttributes') if isinstance(data.get('storeAttributes'), dict) else {}

        return cls(
            product_id=format_scalar(product_id),
            display_name=_to_localized(data.get('displayName')),
            short_description=_to_localized(data.get('shortDescription')),
            long_description=_to_localized(data.get('longDescription')),
            brand=_to_text(data.get('brand')),
            online_flag=_to_flag(data.get('onlineFlag', data.get('online'))),
            available_flag=_to_flag(data.get('availableFlag', data.get('available'))),
            searchable_flag=_to_flag(data.get('searchableFlag', data.get('searchable'))),
            tax_class_id=_to_text(data.get('taxClassId')),
            classification_category=_to_category(
                data.get('classificationCategory', data.get('category')), default_catalog_id
            ),
            custom_attributes=_to_custom_attributes(data.get('customAttributes')),
            ean=_to_text(data.get('ean')),
            upc=_to_text(data.get('upc')),
            unit=_to_text(data.get('unit')),
            min_order_quantity=_to_number(data.get('minOrderQuantity')),
            step_quantity=_to_number(data.get('stepQuantity')),
            online_from=_to_text(data.get('onlineFrom')),
            sitemap_included_flag=data.get('sitemapIncludedFlag'),
            sitemap_changefrequency=_to_text(data.get('sitemapChangefrequency')),
            sitemap_priority=_to_number(data.get('sitemapPriority')),
            page_attributes=PageAttributes(
                page_title=_to_text(page.get('pageTitle')),
                page_description=_to_text(page.get('pageDescription')),
                page_keywords=_to_text(page.get('pageKeywords')),
                page_url=_to_text(page.get('pageUrl')),
            ),
            store_attributes=StoreAttributes(
                force_price_flag=store.get('forcePriceFlag'),
                non_inventory_flag=store.get('nonInventoryFlag'),
                non_revenue_flag=store.get('nonRevenueFlag'),
                non_discountable_flag=store.get('nonDiscountableFlag'),
            ),
            manufacturer_sku=_to_text(data.get('manufacturerSku')),
            pinterest_enabled_flag=data.get('pinterestEnabledFlag'),
            facebook_enabled_flag=data.get('facebookEnabledFlag'),
            variations=variations,
        )


def _lang(localized: LocalizedString) -> str:
    return f' xml:lang="{escape_xml(localized.locale)}"' if localized.locale else ''


def _element(indent: str, tag: str, value: Any) -> str:
    return f'{indent}<{tag}>{escape_xml(value)}</{tag}>'


def _attribute_block(indent: str, tag: str, attributes: Any, skip_empty: bool) -> List[str]:
    children = []
    for attr_field in fields(attributes):
        value = getattr(attributes, attr_field.name)
        if value is None or (skip_empty and is_blank(value)):
            continue
        children.append(f'{indent}{_element(indent, kebab_case(attr_field.name), value)}')

    if not children:
        return []
    return [f'{indent}<{tag}>'] + children + [f'{indent}</{tag}>']


def _to_text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return format_scalar(value)


def _to_number(value: Any) -> Any:
    """Parse numeric text; unparseable values are kept so validation can report them."""
    if is_blank(value):
        return None
    if isinstance(value, bool) or isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return value
    return number if math.isfinite(number) else value


def _to_flag(value: Any) -> str:
    if value is False:
        return FLAG_FALSE
    if isinstance(value, str) and value.strip().lower() == FLAG_FALSE:
        return FLAG_FALSE
    return FLAG_TRUE


def _to_localized(value: Any) -> Optional[LocalizedString]:
    if isinstance(value, LocalizedString):
        return value
    if isinstance(value, dict) and 'value' in value:
        return LocalizedString(value=format_scalar(value['value']), locale=value.get('locale'))
    if is_blank(value):
        return None
    return LocalizedString(value=format_scalar(value))


def _to_category(value: Any, default_catalog_id: Optional[str]) -> Optional[ClassificationCategory]:
    if isinstance(value, dict):
        category_id = _to_text(value.get('categoryId'))
        if not category_id:
            return None
        return ClassificationCategory(
            category_id=category_id,
            catalog_id=value.get('catalogId') or default_catalog_id,
        )
    if is_blank(value):
        return None
    return ClassificationCategory(category_id=format_scalar(value), catalog_id=default_catalog_id)


def _to_custom_attributes(value: Any) -> List[CustomAttribute]:
    if not isinstance(value, list):
        return []
    attributes = []
    for item in value:
        if isinstance(item, CustomAttribute):
            attributes.append(item)
        elif isinstance(item, dict):
            attributes.append(CustomAttribute(
                attribute_id=format_scalar(item.get('attributeId')),
                value=item.get('value'),
            ))
    return attributes


def _to_variation_attribute(item: Any) -> Optional[VariationAttribute]:
    if isinstance(item, VariationAttribute):
        return item
    if not isinstance(item, dict):
        return None

    attribute_id = _to_text(item.get('attributeId'))
    if not attribute_id:
        return None

    values = []
    for raw in item.get('values') or []:
        if isinstance(raw, VariationAttributeValue):
            values.append(raw)
        elif isinstance(raw, dict):
            value = _to_text(raw.get('value'))
            if value:
                display = _to_localized(raw.get('displayValue')) or LocalizedString(value)
                values.append(VariationAttributeValue(value=value, display_value=display))
        elif not is_blank(raw):
            value = format_scalar(raw)
            values.append(VariationAttributeValue(value=value, display_value=LocalizedString(value)))

    return VariationAttribute(
        attribute_id=attribute_id,
        display_name=_to_localized(item.get('displayName')) or LocalizedString(attribute_id),
        values=values,
    )


def _to_variant(item: Any) -> Optional[ProductVariant]:
    if isinstance(item, ProductVariant):
        return item
    if not isinstance(item, dict):
        return None

    product_id = _to_text(item.get('productId', item.get('product-id')))
    if not product_id:
        return None

    attribute_values = item.get('attributeValues') or {}
    return ProductVariant(
        product_id=product_id,
        attribute_values={
            format_scalar(key): format_scalar(value) for key, value in attribute_values.items()
        } if isinstance(attribute_values, dict) else {},
    )


def _to_variations(data: Dict[str, Any]) -> ProductVariations:
    variations = ProductVariations()
    for item in data.get('variationAttributes') or []:
        attribute = _to_variation_attribute(item)
        if attribute:
            variations.add_variation_attribute(attribute)
    for item in data.get('variants') or []:
        variant = _to_variant(item)
        if variant:
            variations.add_variant(variant)
    return variations
