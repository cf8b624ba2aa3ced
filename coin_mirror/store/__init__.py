from .airtable import AirtableStore, symbol_formula

__all__ = ["AirtableStore", "symbol_formula"]
