#!/usr/bin/env python3
"""
Data Quality Report
Checks how well a product file fills a company mapping before converting it.
"""

import sys
import argparse
import json
from pathlib import Path
from dotenv import load_dotenv
from colorama import init, Fore

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sfcc_catalog.config_loader import MappingConfigCache, ConfigurationError
from sfcc_catalog.conversion import ConversionOrchestrator
from sfcc_catalog.file_handler import FileHandler
from sfcc_catalog.settings import setup_logging

# Initialize colorama
init(autoreset=True)


def main():
    """Main report function."""
    parser = argparse.ArgumentParser(
        description='Report data quality of a product file against a company mapping'
    )
    parser.add_argument(
        'source_file',
        type=str,
        help='Path to product file to analyze'
    )
    parser.add_argument(
        '--company',
        type=str,
        required=True,
        help='Company whose mapping configuration is used'
    )
    parser.add_argument(
        '--companies-dir',
        type=str,
        help='Directory holding company mapping configurations'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Output JSON file for the report'
    )

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()
    setup_logging('INFO')

    source_path = Path(args.source_file)
    if not source_path.exists():
        print(Fore.RED + f"ERROR: Source file not found: {source_path}")
        sys.exit(1)

    try:
        rows, _ = FileHandler().read_rows(str(source_path))
        cache = MappingConfigCache(args.companies_dir)
        mapping = cache.load_company_mapping(args.company)
    except (ConfigurationError, ValueError) as e:
        print(Fore.RED + f"ERROR: {e}")
        sys.exit(1)

    report = ConversionOrchestrator(cache).get_data_quality_stats(rows, mapping)
    summary = report['summary']

    print(Fore.CYAN + "=" * 60)
    print(Fore.CYAN + f"DATA QUALITY: {source_path.name} ({args.company})")
    print(Fore.CYAN + "=" * 60)
    print(f"Products: {summary['total']}")
    print(f"Valid: {Fore.GREEN + str(summary['valid'])}")
    print(f"Invalid: {Fore.RED + str(summary['invalid'])}")
    print(f"Validation rate: {summary['validation_rate']}%")
    print()

    print(Fore.CYAN + "Field fill rates:")
    for key, stats in report['field_stats'].items():
        total = stats['filled'] + stats['empty']
        color = Fore.GREEN if stats['empty'] == 0 else Fore.YELLOW
        print(color + f"  {key}: {stats['filled']}/{total}")

    if report['missing_required']:
        print()
        print(Fore.RED + "Required fields with empty values:")
        for key, count in report['missing_required'].items():
            print(Fore.RED + f"  {key}: {count} rows")

    if report['errors_by_type']:
        print()
        print(Fore.RED + "Validation errors:")
        for message, count in report['errors_by_type'].items():
            print(Fore.RED + f"  {message} ({count})")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)
        print()
        print(Fore.GREEN + f"✓ Report saved to: {args.output}")


if __name__ == '__main__':
    main()
