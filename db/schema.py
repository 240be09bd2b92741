# SQL schema for the LingoFriends progress store

SCHEMA_VERSION = 4

SCHEMA_SQL = """
-- Chunk catalogue (curated content, never touched by the scheduler)
CREATE TABLE IF NOT EXISTS chunks (
    id TEXT PRIMARY KEY,
    text TEXT NOT NULL,
    translation TEXT NOT NULL,
    chunk_type TEXT NOT NULL CHECK(chunk_type IN ('polyword', 'collocation', 'utterance', 'sentence', 'frame')),
    target_language TEXT NOT NULL,
    native_language TEXT NOT NULL,
    difficulty INTEGER NOT NULL DEFAULT 1 CHECK(difficulty BETWEEN 1 AND 5),
    frequency INTEGER NOT NULL DEFAULT 0,
    base_interval INTEGER NOT NULL DEFAULT 1,
    slots TEXT,
    topics TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Per-learner SRS state
CREATE TABLE IF NOT EXISTS user_chunks (
    user_id TEXT NOT NULL,
    chunk_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'new' CHECK(status IN ('new', 'learning', 'acquired', 'fragile')),
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT,
    repetitions INTEGER NOT NULL DEFAULT 0,
    total_encounters INTEGER NOT NULL DEFAULT 0,
    correct_first_try INTEGER NOT NULL DEFAULT 0,
    wrong_attempts INTEGER NOT NULL DEFAULT 0,
    help_used_count INTEGER NOT NULL DEFAULT 0,
    confidence_score REAL NOT NULL DEFAULT 0.5,
    first_encountered_in TEXT,
    last_encountered_in TEXT,
    first_encountered_at TEXT,
    last_encountered_at TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (user_id, chunk_id),
    FOREIGN KEY (chunk_id) REFERENCES chunks (id) ON DELETE CASCADE
);

-- Review log
CREATE TABLE IF NOT EXISTS chunk_reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    chunk_id TEXT NOT NULL,
    ts TEXT NOT NULL DEFAULT (datetime('now')),
    review_date TEXT NOT NULL DEFAULT (date('now')),
    correct INTEGER NOT NULL,
    grade INTEGER,
    used_help INTEGER NOT NULL DEFAULT 0,
    wrong_attempts INTEGER NOT NULL DEFAULT 0,
    time_to_answer_ms INTEGER,
    lesson_id TEXT
);

-- Learning trees, one per user and skill path
CREATE TABLE IF NOT EXISTS user_trees (
    user_id TEXT NOT NULL,
    skill_path_id TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'seed' CHECK(status IN ('seed', 'growing', 'bloomed', 'dying', 'dead')),
    health INTEGER NOT NULL DEFAULT 100 CHECK(health BETWEEN 0 AND 100),
    sun_drops_earned INTEGER NOT NULL DEFAULT 0,
    last_refresh_date TEXT NOT NULL DEFAULT (date('now')),
    buffer_days INTEGER NOT NULL DEFAULT 0,
    lessons_completed INTEGER NOT NULL DEFAULT 0,
    position_x INTEGER NOT NULL DEFAULT 0,
    position_y INTEGER NOT NULL DEFAULT 0,
    died_on TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (user_id, skill_path_id)
);

-- Sun drops earned per user per day (daily cap)
CREATE TABLE IF NOT EXISTS daily_earnings (
    user_id TEXT NOT NULL,
    day TEXT NOT NULL,
    earned INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, day)
);
"""

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_user_chunks_due ON user_chunks(user_id, next_review_date);
CREATE INDEX IF NOT EXISTS idx_user_chunks_status ON user_chunks(user_id, status);
CREATE INDEX IF NOT EXISTS idx_chunk_reviews_user ON chunk_reviews(user_id, chunk_id, ts);
"""
