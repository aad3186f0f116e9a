"""
Catalog Manager for CalcuSolve
Calculator modes, math constants and math functions offered to the UI
"""
from database import CATALOG_COLUMNS

# Catalog kind -> (table, required fields, field converters)
CATALOG_KINDS = {
    'modes': ('calculator_modes', ('name', 'display_name'), {'is_default': bool}),
    'constants': ('math_constants', ('name', 'symbol', 'value'), {}),
    'functions': ('math_functions', ('name', 'symbol', 'category'), {}),
}


class CatalogManager:
    def __init__(self, db):
        self.db = db

    def list(self, kind, category=None):
        """List the records of one kind; only functions have categories"""
        table, _, converters = CATALOG_KINDS[kind]
        if category is not None and table != 'math_functions':
            raise ValueError(f"{kind} cannot be filtered by category")
        rows = self.db.get_catalog_records(table, category)
        return [self._to_dict(table, row, converters) for row in rows]

    def get(self, kind, record_id):
        table, _, converters = CATALOG_KINDS[kind]
        row = self.db.get_catalog_record(table, record_id)
        return self._to_dict(table, row, converters) if row else None

    def create(self, kind, data):
        table, required, _ = CATALOG_KINDS[kind]
        missing = [f for f in required if not data.get(f)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        record_id, error = self.db.add_catalog_record(table, self._clean(table, data))
        if record_id is None:
            raise ValueError(f"Could not create record: {error}")
        return self.get(kind, record_id)

    def update(self, kind, record_id, data):
        """Update a record; returns None when it does not exist"""
        table, required, _ = CATALOG_KINDS[kind]
        blank = [f for f in required if f in data and not data[f]]
        if blank:
            raise ValueError(f"Fields cannot be empty: {', '.join(blank)}")

        updated, error = self.db.update_catalog_record(table, record_id, self._clean(table, data))
        if error:
            raise ValueError(f"Could not update record: {error}")
        return self.get(kind, record_id) if updated else None

    @staticmethod
    def _clean(table, data):
        values = {k: v for k, v in data.items() if k in CATALOG_COLUMNS[table]}
        if 'is_default' in values:
            values['is_default'] = int(bool(values['is_default']))
        return values

    @staticmethod
    def _to_dict(table, row, converters):
        record = dict(zip(("id",) + CATALOG_COLUMNS[table], row))
        for field, convert in converters.items():
            record[field] = convert(record[field])
        return record
