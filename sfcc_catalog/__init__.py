"""
SFCC catalog converter.
Turns spreadsheet product rows into Salesforce B2C Commerce Impex catalog XML.
"""

__version__ = "1.0.0"
