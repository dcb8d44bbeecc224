"""
File Handler Module
Reads CSV and Excel product files into rows and writes generated catalogs.
"""

import math
import pandas as pd
import chardet
from pathlib import Path
from typing import Optional, Dict, List, Any, Tuple
from loguru import logger


CSV_EXTENSIONS = ('.csv',)
EXCEL_EXTENSIONS = ('.xlsx', '.xls')


def _clean_cell(value: Any) -> Any:
    """Trim strings and turn NaN/NaT into None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat() if value == value.normalize() else value.isoformat()
    if isinstance(value, str):
        return value.strip()
    if hasattr(value, 'item'):
        # numpy scalars
        return value.item()
    return value


class FileHandler:
    """Handle product file operations with encoding detection and error handling."""

    def __init__(self, encoding: Optional[str] = None):
        """
        Initialize file handler.

        Args:
            encoding: Optional CSV encoding to use. If None, will auto-detect.
        """
        self.encoding = encoding
        self.detected_encoding = None

    def detect_encoding(self, file_path: str) -> str:
        """
        Detect the encoding of a CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Detected encoding string
        """
        with open(file_path, 'rb') as f:
            raw_data = f.read(10000)  # Read first 10KB for detection
        result = chardet.detect(raw_data)
        encoding = result['encoding']
        confidence = result['confidence'] or 0

        logger.info(f"Detected encoding: {encoding} (confidence: {confidence:.2%})")
        return encoding or 'utf-8'

    def read_csv(self, file_path: str, encoding: Optional[str] = None) -> pd.DataFrame:
        """
        Read CSV file with proper encoding handling. All cells are read as text.

        Args:
            file_path: Path to the CSV file
            encoding: Optional encoding (will detect if not provided)

        Returns:
            DataFrame containing the CSV data
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {file_path}")

        if encoding is None:
            encoding = self.encoding or self.detect_encoding(str(file_path))
            self.detected_encoding = encoding

        logger.info(f"Reading CSV file: {file_path}")

        try:
            df = pd.read_csv(
                file_path,
                encoding=encoding,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except UnicodeDecodeError:
            logger.warning("Encoding error, trying UTF-8-BOM")
            df = pd.read_csv(
                file_path,
                encoding='utf-8-sig',
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )

        logger.info(f"Successfully read {len(df)} rows from {file_path}")
        return df

    def read_excel(self, file_path: str) -> pd.DataFrame:
        """
        Read the first sheet of an Excel workbook.

        Args:
            file_path: Path to the workbook

        Returns:
            DataFrame containing the sheet data
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Excel file not found: {file_path}")

        logger.info(f"Reading Excel file: {file_path}")
        df = pd.read_excel(file_path, sheet_name=0)
        df = df.dropna(how='all')

        if df.empty and len(df.columns) == 0:
            raise ValueError(f"Excel file is empty: {file_path}")

        logger.info(f"Successfully read {len(df)} rows from {file_path}")
        return df

    def read_rows(self, file_path: str) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Read a CSV or Excel file into rows and headers.

        Args:
            file_path: Path to the product file

        Returns:
            Tuple of (rows, headers); blank header columns are dropped

        Raises:
            ValueError: If the file type is not supported
        """
        extension = Path(file_path).suffix.lower()

        if extension in CSV_EXTENSIONS:
            df = self.read_csv(file_path)
        elif extension in EXCEL_EXTENSIONS:
            df = self.read_excel(file_path)
        else:
            raise ValueError(
                f"Unsupported file type: {extension or '(none)'}. Use CSV or Excel (.xlsx, .xls)"
            )

        return self.dataframe_to_rows(df)

    def dataframe_to_rows(self, df: pd.DataFrame) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Convert a DataFrame to plain row dictionaries.

        Args:
            df: Source DataFrame

        Returns:
            Tuple of (rows, headers)
        """
        headers = []
        columns = []
        for column in df.columns:
            name = str(column).strip()
            if not name or name.startswith('Unnamed:'):
                continue
            headers.append(name)
            columns.append(column)

        rows = []
        for record in df[columns].itertuples(index=False, name=None):
            rows.append({header: _clean_cell(value) for header, value in zip(headers, record)})

        return rows, headers

    def write_catalog(self, xml_content: str, file_path: str) -> None:
        """
        Write a catalog document to disk.

        Args:
            xml_content: Catalog XML
            file_path: Output file path
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Writing catalog file: {file_path}")
        file_path.write_text(xml_content, encoding='utf-8')
        logger.info(f"Successfully wrote catalog file: {file_path}")

    def analyze_file(self, file_path: str) -> Dict[str, Any]:
        """
        Analyze a product file and return metadata.

        Args:
            file_path: Path to the product file

        Returns:
            Dictionary with analysis results
        """
        rows, headers = self.read_rows(file_path)

        analysis = {
            'row_count': len(rows),
            'column_count': len(headers),
            'columns': headers,
            'missing_values': {
                header: sum(1 for row in rows if row.get(header) in (None, '')) for header in headers
            },
            'sample_rows': rows[:10],
        }

        logger.info(f"File analysis: {analysis['row_count']} rows, {analysis['column_count']} columns")
        return analysis
