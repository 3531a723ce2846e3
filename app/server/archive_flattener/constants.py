"""
Constants for archive processing and document flattening.

This module defines configuration constants used throughout the conversion pipeline,
particularly for flattening nested JSON documents into flat spreadsheet rows.

Usage Patterns:
    - Nested objects: customer.address.city → customer_address_city
    - Arrays (expand mode): products[].items[] → one row per item, arrays dropped
    - Arrays (serialize mode): tags ["x", "y"] → tags = '["x","y"]'

Example:
    Original nested structure:
    {
        "order": "A-17",
        "customer": {"name": "Ana", "address": {"city": "Lima"}},
        "products": [
            {"name": "Desk", "price": 120, "quantity": 1,
             "items": [{"code": "D1", "name": "Top", "price": 80, "quantity": 1},
                       {"code": "D2", "name": "Legs", "price": 40, "quantity": 4}]}
        ]
    }

    Flattened rows (expand mode):
    {"order": "A-17", "customer_name": "Ana", "customer_address_city": "Lima",
     "product_name": "Desk", ..., "item_code": "D1", ...}
    {"order": "A-17", "customer_name": "Ana", "customer_address_city": "Lima",
     "product_name": "Desk", ..., "item_code": "D2", ...}
"""

# Delimiter for separating nested object keys in flattened field names
# Example: {"customer": {"email": "ana@example.com"}} → "customer_email"
NESTED_FIELD_DELIMITER = "_"

# Value written for null fields and for columns a row does not have
BLANK_VALUE = ""

# Archive entries whose names end with one of these suffixes are parsed as documents
DOCUMENT_SUFFIXES = (".json",)

# Uploaded files must carry this extension when a filename is supplied
ARCHIVE_EXTENSION = ".zip"

# Expand mode: the array of products, and the array of items inside each product
PRODUCTS_FIELD = "products"
ITEMS_FIELD = "items"

# Expand mode: output column → source key on the product / item
PRODUCT_FIELDS = {
    "product_name": "name",
    "product_price": "price",
    "product_quantity": "quantity",
}
ITEM_FIELDS = {
    "item_code": "code",
    "item_name": "name",
    "item_price": "price",
    "item_quantity": "quantity",
}

# Output workbook
DEFAULT_OUTPUT_DIR = "processed"
OUTPUT_FILENAME_TEMPLATE = "processed_{file_id}.xlsx"
SHEET_NAME = "Data"

# Number of rows echoed back in conversion results
SAMPLE_ROW_COUNT = 5
