"""
Database Manager for CalcuSolve
Handles SQLite storage for calculation history, user preferences and the
calculator catalog (modes, constants, functions)
"""
import logging
import sqlite3
from datetime import datetime

import config

logger = logging.getLogger(__name__)

# Catalog tables and the columns callers may read and write, id excluded
CATALOG_COLUMNS = {
    'calculator_modes': ('name', 'display_name', 'is_default'),
    'math_constants': ('name', 'symbol', 'value', 'description'),
    'math_functions': ('name', 'symbol', 'description', 'category', 'error_message'),
}

PREFERENCE_COLUMNS = ('dark_mode', 'history_limit', 'default_mode')


def _now():
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class Database:
    def __init__(self, db_path=config.DB_PATH):
        self.db_path = db_path
        self.init_database()

    def get_connection(self):
        """Create and return a database connection"""
        return sqlite3.connect(self.db_path)

    def init_database(self):
        """Initialize database tables"""
        conn = self.get_connection()
        cursor = conn.cursor()

        # Calculations history table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS calculations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT,
                expression TEXT NOT NULL,
                result TEXT NOT NULL,
                mode TEXT DEFAULT 'basic',
                timestamp TEXT NOT NULL
            )
        ''')

        # User preferences table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_preferences (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL UNIQUE,
                dark_mode INTEGER DEFAULT 0,
                history_limit INTEGER NOT NULL,
                default_mode TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        # Calculator modes table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS calculator_modes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                display_name TEXT NOT NULL,
                is_default INTEGER DEFAULT 0
            )
        ''')

        # Math constants table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS math_constants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                symbol TEXT NOT NULL,
                value TEXT NOT NULL,
                description TEXT
            )
        ''')

        # Math functions table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS math_functions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                symbol TEXT NOT NULL,
                description TEXT,
                category TEXT NOT NULL,
                error_message TEXT
            )
        ''')

        # Initialize default catalog rows if empty
        cursor.execute('SELECT COUNT(*) FROM calculator_modes')
        if cursor.fetchone()[0] == 0:
            for name, display_name, is_default in config.DEFAULT_CALCULATOR_MODES:
                cursor.execute(
                    'INSERT INTO calculator_modes (name, display_name, is_default) VALUES (?, ?, ?)',
                    (name, display_name, int(is_default)))

        cursor.execute('SELECT COUNT(*) FROM math_constants')
        if cursor.fetchone()[0] == 0:
            cursor.executemany(
                'INSERT INTO math_constants (name, symbol, value, description) VALUES (?, ?, ?, ?)',
                config.DEFAULT_MATH_CONSTANTS)

        cursor.execute('SELECT COUNT(*) FROM math_functions')
        if cursor.fetchone()[0] == 0:
            cursor.executemany(
                'INSERT INTO math_functions (name, symbol, description, category, error_message)'
                ' VALUES (?, ?, ?, ?, ?)',
                config.DEFAULT_MATH_FUNCTIONS)

        # Migration: calculations tables created before modes existed
        cursor.execute("PRAGMA table_info(calculations)")
        calc_columns = [column[1] for column in cursor.fetchall()]
        if 'mode' not in calc_columns:
            cursor.execute("ALTER TABLE calculations ADD COLUMN mode TEXT DEFAULT 'basic'")
            logger.info("Database migrated: Added mode column to calculations")

        conn.commit()
        conn.close()

    # ── Calculation history ──────────────────────────────────────────────────
    def add_calculation(self, expression, result, user_id=None, mode=config.DEFAULT_MODE,
                        timestamp=None):
        """Add calculation to history"""
        if timestamp is None:
            timestamp = _now()
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO calculations (user_id, expression, result, mode, timestamp)
            VALUES (?, ?, ?, ?, ?)
        ''', (user_id, expression, result, mode, timestamp))
        conn.commit()
        calc_id = cursor.lastrowid
        conn.close()
        return calc_id

    def get_calculations(self, user_id=None, limit=config.DEFAULT_HISTORY_LIMIT):
        """Retrieve calculation history for one user, newest first"""
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute('''
            SELECT expression, result, timestamp, id, mode FROM calculations
            WHERE user_id IS ?
            ORDER BY timestamp DESC, id DESC LIMIT ?
        ''', (user_id, limit))
        calculations = cursor.fetchall()
        conn.close()
        return calculations

    def get_calculation(self, calc_id, user_id=None):
        """Fetch a single calculation by id"""
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute('''
            SELECT expression, result, timestamp, id, mode FROM calculations
            WHERE id = ? AND user_id IS ?
        ''', (calc_id, user_id))
        row = cursor.fetchone()
        conn.close()
        return row

    def delete_calculation(self, calc_id, user_id=None):
        """Delete a calculation by id. Returns True if a row was removed."""
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute('DELETE FROM calculations WHERE id = ? AND user_id IS ?',
                       (calc_id, user_id))
        conn.commit()
        deleted = cursor.rowcount > 0
        conn.close()
        return deleted

    def clear_calculations(self, user_id=None):
        """Clear one user's calculation history. Returns the number of rows removed."""
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute('DELETE FROM calculations WHERE user_id IS ?', (user_id,))
        conn.commit()
        count = cursor.rowcount
        conn.close()
        return count

    # ── User preferences ─────────────────────────────────────────────────────
    def get_preference(self, user_id):
        """Return (id, user_id, dark_mode, history_limit, default_mode) or None"""
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute(
            'SELECT id, user_id, dark_mode, history_limit, default_mode'
            ' FROM user_preferences WHERE user_id = ?',
            (user_id,))
        row = cursor.fetchone()
        conn.close()
        return row

    def add_preference(self, user_id, dark_mode=False,
                       history_limit=config.DEFAULT_HISTORY_LIMIT,
                       default_mode=config.DEFAULT_MODE):
        """Create a user's preference row.
        Returns (success, preference_id); preference_id is None on failure."""
        now = _now()
        conn = self.get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute('''
                INSERT INTO user_preferences
                    (user_id, dark_mode, history_limit, default_mode, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (user_id, int(dark_mode), history_limit, default_mode, now, now))
            conn.commit()
            preference_id = cursor.lastrowid
            success = True
        except sqlite3.IntegrityError:
            preference_id = None
            success = False
        conn.close()
        return (success, preference_id)

    def update_preference(self, user_id, /, **changes):
        """Update the given preference columns for a user"""
        unknown = set(changes) - set(PREFERENCE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")
        if not changes:
            return
        if 'dark_mode' in changes:
            changes['dark_mode'] = int(changes['dark_mode'])

        assignments = ", ".join(f"{column}=?" for column in changes)
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute(
            f'UPDATE user_preferences SET {assignments}, updated_at=? WHERE user_id=?',
            (*changes.values(), _now(), user_id))
        conn.commit()
        conn.close()

    # ── Catalog ──────────────────────────────────────────────────────────────
    def get_catalog_records(self, table, category=None):
        """Return all rows of a catalog table ordered by id"""
        columns = CATALOG_COLUMNS[table]
        query = f"SELECT id, {', '.join(columns)} FROM {table}"
        params = []
        if category is not None:
            query += ' WHERE category = ?'
            params.append(category)
        query += ' ORDER BY id'

        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()
        return rows

    def get_catalog_record(self, table, record_id):
        columns = CATALOG_COLUMNS[table]
        conn = self.get_connection()
        cursor = conn.cursor()
        cursor.execute(
            f"SELECT id, {', '.join(columns)} FROM {table} WHERE id = ?", (record_id,))
        row = cursor.fetchone()
        conn.close()
        return row

    def add_catalog_record(self, table, values):
        """Insert a catalog row.
        Returns (record_id, error_msg); record_id is None on failure."""
        columns = [c for c in CATALOG_COLUMNS[table] if c in values]
        placeholders = ", ".join("?" for _ in columns)
        conn = self.get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                [values[c] for c in columns])
            conn.commit()
            result, error = cursor.lastrowid, None
        except sqlite3.IntegrityError as e:
            result, error = None, str(e)
        conn.close()
        return result, error

    def update_catalog_record(self, table, record_id, values):
        """Update a catalog row. Returns (updated, error_msg)."""
        columns = [c for c in CATALOG_COLUMNS[table] if c in values]
        if not columns:
            return False, "No fields to update"
        assignments = ", ".join(f"{c}=?" for c in columns)
        conn = self.get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(
                f"UPDATE {table} SET {assignments} WHERE id=?",
                [values[c] for c in columns] + [record_id])
            conn.commit()
            result, error = cursor.rowcount > 0, None
        except sqlite3.IntegrityError as e:
            result, error = False, str(e)
        conn.close()
        return result, error
