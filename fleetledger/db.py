# fleetledger/db.py
import os
import sqlite3

from flask import current_app, g

SCHEMA_FILE = os.path.join(os.path.dirname(__file__), "init_db.sql")


def connect(db_path):
    """Open a connection with the settings every caller relies on."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    # SQLite's own LIKE/lower() only fold ASCII
    conn.create_function("casefold", 1, lambda s: s.casefold() if s is not None else None,
                         deterministic=True)
    return conn


def get_db():
    if '_database' not in g:
        g._database = connect(current_app.config['DB_PATH'])
    return g._database


def close_db(exception=None):
    conn = g.pop('_database', None)
    if conn is not None:
        conn.close()


def query_db(query, args=(), one=False):
    rows = get_db().execute(query, args).fetchall()
    if one:
        return rows[0] if rows else None
    return rows


def execute_db(query, args=()):
    """Run a single write statement and commit. Returns the last row id."""
    conn = get_db()
    # commits on success, rolls back on sqlite3.Error
    with conn:
        cur = conn.execute(query, args)
    return cur.lastrowid


def init_db(db_path):
    """Apply init_db.sql to ``db_path``. Every statement is IF NOT EXISTS, so this runs at each startup."""
    if not os.path.exists(SCHEMA_FILE):
        raise FileNotFoundError(f"init_db.sql not found at expected path: {SCHEMA_FILE}")

    with open(SCHEMA_FILE, 'r', encoding='utf-8') as f:
        script = f.read()
    conn = connect(db_path)
    try:
        conn.executescript(script)
    finally:
        conn.close()
