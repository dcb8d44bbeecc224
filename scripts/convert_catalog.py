#!/usr/bin/env python3
"""
Catalog Conversion Script
Converts a CSV/Excel product file into an Impex catalog XML file for a company.
"""

import sys
import argparse
import json
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger
from colorama import init, Fore

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sfcc_catalog.config_loader import MappingConfigCache, ConfigurationError
from sfcc_catalog.conversion import ConversionOrchestrator
from sfcc_catalog.file_handler import FileHandler
from sfcc_catalog.settings import load_config, resolve_paths, setup_logging

# Initialize colorama for colored output
init(autoreset=True)


def main():
    """Main conversion function."""
    parser = argparse.ArgumentParser(
        description='Convert a product CSV/Excel file to catalog XML'
    )
    parser.add_argument(
        '--source',
        type=str,
        help='Path to source product file (.csv, .xlsx, .xls)'
    )
    parser.add_argument(
        '--company',
        type=str,
        help='Company whose mapping configuration is used'
    )
    parser.add_argument(
        '--schema',
        type=str,
        help='Mapping schema (default: catalog)'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        help='Output directory for the catalog XML'
    )
    parser.add_argument(
        '--companies-dir',
        type=str,
        help='Directory holding company mapping configurations'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='config/config.yaml',
        help='Path to configuration YAML file'
    )
    parser.add_argument(
        '--sample-size',
        type=int,
        help='Only convert the first N rows'
    )
    parser.add_argument(
        '--preview',
        action='store_true',
        help='Print a preview of the first products instead of writing a file'
    )
    parser.add_argument(
        '--report',
        type=str,
        help='Write the conversion result (errors, warnings, stats) as JSON to this path'
    )

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()

    # Load configuration
    config = load_config(args.config)
    paths = resolve_paths(args, config)

    # Setup logging
    logging_config = config.get('logging', {}) or {}
    setup_logging(logging_config.get('level', 'INFO'), logging_config.get('file'))

    if not paths.source_file:
        print(Fore.RED + "ERROR: Source file path not provided!")
        print("Please provide --source argument, set SOURCE_FILE_PATH env var, or configure in config.yaml")
        sys.exit(1)

    if not Path(paths.source_file).exists():
        print(Fore.RED + f"ERROR: Source file not found: {paths.source_file}")
        sys.exit(1)

    if not paths.company_name:
        print(Fore.RED + "ERROR: Company not provided!")
        print("Please provide --company argument, set COMPANY_NAME env var, or configure in config.yaml")
        sys.exit(1)

    output_path = Path(paths.output_dir) / f"{paths.company_name.lower()}_{paths.schema}.xml"

    print(Fore.CYAN + "=" * 60)
    print(Fore.CYAN + "CATALOG CONVERSION")
    print(Fore.CYAN + "=" * 60)
    print(f"Source file: {paths.source_file}")
    print(f"Company: {paths.company_name} ({paths.schema})")
    print(f"Output: {output_path}")
    print(Fore.CYAN + "=" * 60)
    print()

    try:
        file_handler = FileHandler()
        rows, headers = file_handler.read_rows(paths.source_file)
        if args.sample_size:
            logger.info(f"Using sample size: {args.sample_size} rows")
            rows = rows[:args.sample_size]

        cache = MappingConfigCache(paths.companies_dir)
        orchestrator = ConversionOrchestrator(cache, show_progress=True)

        if args.preview:
            mapping = cache.load_company_mapping(paths.company_name, paths.schema)
            preview_items = (config.get('conversion', {}) or {}).get('preview_items', 3)
            print(orchestrator.generate_preview(rows, mapping, max_items=preview_items))
            return

        result = orchestrator.convert(rows, paths.company_name, paths.schema, headers=headers)

        if result.xml_content:
            file_handler.write_catalog(result.xml_content, str(output_path))

        if args.report:
            report_path = Path(args.report)
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(json.dumps(result.to_dict(), indent=2, default=str), encoding='utf-8')
            logger.info(f"Conversion report saved to: {report_path}")

        stats = result.stats
        print()
        color = Fore.GREEN if result.success else Fore.YELLOW
        print(color + "=" * 60)
        print(color + ("CONVERSION COMPLETED SUCCESSFULLY!" if result.success else "CONVERSION COMPLETED WITH ERRORS"))
        print(color + "=" * 60)
        print(f"Total rows: {stats.total_rows}")
        print(f"Products written: {Fore.GREEN + str(stats.processed_rows)}")
        print(f"Skipped: {Fore.RED + str(stats.skipped_rows)}")

        for error in result.errors:
            print(Fore.RED + f"  Row {error.row}: {error.message}")
        for warning in result.warnings:
            print(Fore.YELLOW + f"  ⚠ Row {warning.row}: {warning.message}")

        if result.xml_content:
            print(f"Output file: {Fore.CYAN + str(output_path)}")
        else:
            print(Fore.RED + "No valid products, no catalog written.")
            sys.exit(1)

    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logger.exception("Conversion failed with error")
        print(Fore.RED + f"\nERROR: Conversion failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
