# pharmacy_pos/constants.py
APP_NAME = "Pharma360 POS"

TEMPLATES_DIR = "resources/templates"
INVOICE_TEMPLATE = "sale_invoice.html"

# Push notification names emitted by the platform
EVENT_SALE_CREATED = "sale-created"
EVENT_INVENTORY_UPDATED = "inventory-updated"

WALK_IN_LABEL = "Walk-in Customer"
SALE_TYPE_RETAIL = "retail"
