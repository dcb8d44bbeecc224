"""
Catalog Writer Module
Wraps serialized products in an Impex catalog document with its header block.
"""

from typing import List

from .config_loader import CatalogHeader
from .models import ProductRecord, escape_xml


CATALOG_NAMESPACE = 'http://www.demandware.com/xml/impex/catalog/2006-10-31'
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


class CatalogWriter:
    """Generate complete catalog XML documents."""

    def __init__(self, catalog_header: CatalogHeader, indent: str = '  '):
        """
        Initialize catalog writer.

        Args:
            catalog_header: Catalog id, locale, currency and image settings
            indent: Indentation unit
        """
        self.catalog_header = catalog_header
        self.indent = indent

    def generate(self, products: List[ProductRecord]) -> str:
        """
        Generate the catalog document.

        Products are written in the given order; callers pass only valid products.

        Args:
            products: Products to include

        Returns:
            XML document text
        """
        header = self.catalog_header
        lines = [
            XML_DECLARATION,
            f'<catalog xmlns="{CATALOG_NAMESPACE}" catalog-id="{escape_xml(header.catalog_id)}">',
        ]
        lines.extend(self._header_lines())
        lines.append('')

        nested = self.indent * 2
        for product in products:
            fragment = product.to_xml(indent=nested)
            lines.extend(f'{self.indent}{line}' for line in fragment.split('\n'))
            lines.append('')

        lines.append('</catalog>')
        return '\n'.join(lines)

    def _header_lines(self) -> List[str]:
        header = self.catalog_header
        i1 = self.indent
        i2 = self.indent * 2
        i3 = self.indent * 3
        i4 = self.indent * 4

        lines = [f'{i1}<header>']
        if header.default_locale:
            lines.append(f'{i2}<default-locale>{escape_xml(header.default_locale)}</default-locale>')
        if header.default_currency:
            lines.append(f'{i2}<default-currency>{escape_xml(header.default_currency)}</default-currency>')

        images = header.image_settings
        if images:
            lines.append(f'{i2}<image-settings>')
            lines.append(f'{i3}<internal-location base-path="{escape_xml(images.base_path)}"/>')
            lines.append(f'{i3}<view-types>')
            for view_type in images.view_types:
                lines.append(f'{i4}<view-type>{escape_xml(view_type)}</view-type>')
            lines.append(f'{i3}</view-types>')
            if images.variation_attribute_id:
                lines.append(
                    f'{i3}<variation-attribute-id>{escape_xml(images.variation_attribute_id)}'
                    f'</variation-attribute-id>'
                )
            if images.alt_pattern:
                lines.append(f'{i3}<alt-pattern>{escape_xml(images.alt_pattern)}</alt-pattern>')
            if images.title_pattern:
                lines.append(f'{i3}<title-pattern>{escape_xml(images.title_pattern)}</title-pattern>')
            lines.append(f'{i2}</image-settings>')

        lines.append(f'{i1}</header>')
        return lines
