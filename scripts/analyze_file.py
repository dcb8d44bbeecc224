#!/usr/bin/env python3
"""
Product File Analysis Utility
Analyzes CSV/Excel product files to understand structure before mapping them.
"""

import sys
import argparse
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger
from colorama import init, Fore
import json

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sfcc_catalog.config_loader import MappingConfigCache, ConfigurationError
from sfcc_catalog.file_handler import FileHandler
from sfcc_catalog.mapper import FieldMapper
from sfcc_catalog.settings import setup_logging

# Initialize colorama
init(autoreset=True)


def main():
    """Main analysis function."""
    parser = argparse.ArgumentParser(
        description='Analyze product file structure and column coverage'
    )
    parser.add_argument(
        'source_file',
        type=str,
        help='Path to CSV/Excel file to analyze'
    )
    parser.add_argument(
        '--company',
        type=str,
        help='Also check columns against this company mapping'
    )
    parser.add_argument(
        '--companies-dir',
        type=str,
        help='Directory holding company mapping configurations'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Output JSON file for analysis results'
    )

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()
    setup_logging('INFO')

    source_path = Path(args.source_file)

    if not source_path.exists():
        print(Fore.RED + f"ERROR: File not found: {source_path}")
        sys.exit(1)

    print(Fore.CYAN + "=" * 60)
    print(Fore.CYAN + "PRODUCT FILE ANALYSIS")
    print(Fore.CYAN + "=" * 60)
    print(f"File: {source_path}")
    print()

    try:
        analysis = FileHandler().analyze_file(str(source_path))

        print(Fore.GREEN + "✓ Analysis Complete")
        print()
        print(Fore.YELLOW + "Summary:")
        print(f"  Rows: {analysis['row_count']}")
        print(f"  Columns: {analysis['column_count']}")
        print()

        print(Fore.YELLOW + "Columns:")
        for i, col in enumerate(analysis['columns'], 1):
            missing = analysis['missing_values'][col]
            missing_pct = (missing / analysis['row_count'] * 100) if analysis['row_count'] > 0 else 0
            status = Fore.GREEN + "✓" if missing == 0 else Fore.YELLOW + f"⚠ ({missing} missing, {missing_pct:.1f}%)"
            print(f"  {i:2d}. {col:30s} {status}")

        if args.company:
            mapping = MappingConfigCache(args.companies_dir).load_company_mapping(args.company)
            unmapped = FieldMapper(mapping).unmapped_headers(analysis['columns'])
            analysis['unmapped_columns'] = unmapped

            print()
            print(Fore.YELLOW + f"Mapping coverage ({mapping.company_name}):")
            if unmapped:
                for col in unmapped:
                    print(Fore.YELLOW + f"  ⚠ {col} is not mapped")
            else:
                print(Fore.GREEN + "  ✓ Every column is mapped")

        print()
        print(Fore.YELLOW + "Sample Rows (first 3):")
        for i, row in enumerate(analysis['sample_rows'][:3], 1):
            print(f"  Row {i}:")
            for key, value in list(row.items())[:5]:  # Show first 5 fields
                value_str = str(value)[:50]  # Truncate long values
                print(f"    {key}: {value_str}")
            if len(row) > 5:
                print(f"    ... and {len(row) - 5} more fields")
            print()

        # Save to JSON if requested
        if args.output:
            output_path = Path(args.output)
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(analysis, f, indent=2, default=str)
            print(Fore.GREEN + f"✓ Analysis saved to: {output_path}")

    except (ConfigurationError, ValueError) as e:
        logger.exception("Analysis failed")
        print(Fore.RED + f"\nERROR: Analysis failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
