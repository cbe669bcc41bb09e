create_sites = """CREATE TABLE IF NOT EXISTS sites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    name TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);"""

create_forums = """CREATE TABLE IF NOT EXISTS forums (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id INTEGER NOT NULL REFERENCES sites (id) ON DELETE CASCADE,
    original_id TEXT NOT NULL,
    name TEXT NOT NULL,
    original_url TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (site_id, original_id)
);"""

create_threads = """CREATE TABLE IF NOT EXISTS threads (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    forum_id INTEGER NOT NULL REFERENCES forums (id) ON DELETE CASCADE,
    original_id TEXT NOT NULL,
    name TEXT NOT NULL,
    original_url TEXT NOT NULL,
    last_sync_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (forum_id, original_id)
);"""

create_posts = """CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id INTEGER NOT NULL REFERENCES threads (id) ON DELETE CASCADE,
    original_id TEXT NOT NULL,
    username TEXT NOT NULL DEFAULT '',
    user_id TEXT,
    content TEXT NOT NULL DEFAULT '',
    posted_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (thread_id, original_id)
);"""

create_media = """CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    post_id INTEGER NOT NULL REFERENCES posts (id) ON DELETE CASCADE,
    media_type_id INTEGER NOT NULL,
    original_id TEXT,
    url TEXT NOT NULL,
    thumbnail_url TEXT,
    filename TEXT,
    caption TEXT,
    is_downloaded INTEGER NOT NULL DEFAULT 0,
    local_path TEXT,
    mime_type TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (post_id, url)
);
CREATE INDEX IF NOT EXISTS idx_media_url ON media (url);"""

create_sync_jobs = """CREATE TABLE IF NOT EXISTS sync_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_type TEXT NOT NULL,
    status TEXT NOT NULL,
    site_id INTEGER,
    forum_id INTEGER,
    thread_id INTEGER,
    entity_name TEXT,
    progress INTEGER NOT NULL DEFAULT 0,
    total_items INTEGER NOT NULL DEFAULT 0,
    processed_items INTEGER NOT NULL DEFAULT 0,
    current_step TEXT,
    error_message TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    completed_at TEXT
);"""

create_schema_version = """CREATE TABLE IF NOT EXISTS schema_version (
    version TEXT NOT NULL,
    applied_at TEXT DEFAULT CURRENT_TIMESTAMP
);"""
