"""Database schema definitions."""

SCHEMA_SQL = """
-- One transcript per (episode, language)
CREATE TABLE IF NOT EXISTS transcript (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    episode_id TEXT NOT NULL,
    language TEXT NOT NULL DEFAULT 'en',
    status TEXT NOT NULL DEFAULT 'not_ready',  -- not_ready, queued, transcribing, ready, failed
    full_text TEXT,
    utterances TEXT,  -- JSON list of utterances (diarized payload)
    provider TEXT,
    error_message TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(episode_id, language)
);

CREATE INDEX IF NOT EXISTS idx_transcript_status ON transcript(status);

-- One summary per (episode, level, language)
CREATE TABLE IF NOT EXISTS summary (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    episode_id TEXT NOT NULL,
    level TEXT NOT NULL,  -- 'quick' or 'deep'
    language TEXT NOT NULL DEFAULT 'en',
    status TEXT NOT NULL DEFAULT 'not_ready',  -- not_ready, queued, transcribing, summarizing, ready, failed
    content TEXT,  -- JSON, schema differs by level
    error_message TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(episode_id, level, language)
);

CREATE INDEX IF NOT EXISTS idx_summary_episode_id ON summary(episode_id);
CREATE INDEX IF NOT EXISTS idx_summary_status ON summary(status);

-- Settings table for runtime configuration overrides
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def get_schema() -> str:
    """Return the database schema SQL."""
    return SCHEMA_SQL
