"""
Settings Module
Application configuration from YAML, environment variables and command line arguments.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger


DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_OUTPUT_DIR = "./data/output"
LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


@dataclass
class ConversionPaths:
    source_file: Optional[str]
    output_dir: str
    company_name: Optional[str]
    schema: str
    companies_dir: Optional[str]


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Config file not found: {config_path}")
        return {}


def resolve_paths(args: Any, config: Dict[str, Any]) -> ConversionPaths:
    """
    Resolve file paths and company from args, env vars, or config.

    Priority: command line args > environment variables > config file > defaults.

    Args:
        args: Parsed argparse namespace (missing attributes count as unset)
        config: Loaded YAML configuration

    Returns:
        ConversionPaths
    """
    files = config.get('files', {}) or {}
    conversion = config.get('conversion', {}) or {}

    source_file = (
        getattr(args, 'source', None) or
        os.getenv('SOURCE_FILE_PATH') or
        files.get('source_file') or
        None
    )

    output_dir = (
        getattr(args, 'output_dir', None) or
        os.getenv('OUTPUT_DIR') or
        files.get('output_dir') or
        DEFAULT_OUTPUT_DIR
    )

    company_name = (
        getattr(args, 'company', None) or
        os.getenv('COMPANY_NAME') or
        conversion.get('company') or
        None
    )

    schema = (
        getattr(args, 'schema', None) or
        conversion.get('schema') or
        'catalog'
    )

    companies_dir = (
        getattr(args, 'companies_dir', None) or
        os.getenv('COMPANY_CONFIG_DIR') or
        files.get('companies_dir') or
        None
    )

    return ConversionPaths(
        source_file=source_file,
        output_dir=output_dir,
        company_name=company_name,
        schema=schema,
        companies_dir=companies_dir,
    )


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for the stderr sink
        log_file: Optional log file (rotated at 10 MB)
    """
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level='DEBUG', rotation='10 MB', encoding='utf-8')
