"""Database schema definitions for the plansync store.

Contains the canonical SQL schema and the current schema version constant.
Cascades are not declared here: deletes are ordered explicitly by the
store (edges, links, traces and lessons first, then tasks and facts, then
the plan). Every statement is IF NOT EXISTS, so running the script over an
older database adds what it lacks.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS plans (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL UNIQUE,
    description TEXT DEFAULT '',
    content     TEXT DEFAULT '',
    completed   INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id             INTEGER NOT NULL REFERENCES plans(id),
    name                TEXT NOT NULL,
    parent_id           INTEGER REFERENCES tasks(id),
    description         TEXT DEFAULT '',
    content             TEXT DEFAULT '',
    status              TEXT NOT NULL DEFAULT 'pending',
    priority            INTEGER NOT NULL DEFAULT 100,
    acceptance_criteria TEXT DEFAULT '',
    completed           INTEGER NOT NULL DEFAULT 0,
    status_changed_at   TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,

    UNIQUE (plan_id, name),
    CHECK (status IN ('pending', 'in_progress', 'completed', 'failed', 'blocked', 'skipped')),
    CHECK (priority >= 0)
);

CREATE INDEX IF NOT EXISTS idx_tasks_plan ON tasks(plan_id);
CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id);
CREATE INDEX IF NOT EXISTS idx_tasks_plan_status_priority ON tasks(plan_id, status, priority, id);

CREATE TABLE IF NOT EXISTS facts (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id     INTEGER NOT NULL REFERENCES plans(id),
    name        TEXT NOT NULL,
    description TEXT DEFAULT '',
    content     TEXT DEFAULT '',
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,

    UNIQUE (plan_id, name)
);

CREATE INDEX IF NOT EXISTS idx_facts_plan ON facts(plan_id);

CREATE TABLE IF NOT EXISTS task_dependencies (
    blocker_id      INTEGER NOT NULL REFERENCES tasks(id),
    blocked_id      INTEGER NOT NULL REFERENCES tasks(id),
    dependency_type TEXT NOT NULL DEFAULT 'blocks',
    created_at      TEXT NOT NULL,
    PRIMARY KEY (blocker_id, blocked_id)
);

CREATE INDEX IF NOT EXISTS idx_deps_blocked ON task_dependencies(blocked_id);

CREATE TABLE IF NOT EXISTS fact_links (
    fact_id    INTEGER NOT NULL REFERENCES facts(id),
    task_id    INTEGER NOT NULL REFERENCES tasks(id),
    link_type  TEXT NOT NULL DEFAULT 'informs',
    created_at TEXT NOT NULL,
    PRIMARY KEY (fact_id, task_id, link_type),
    CHECK (link_type IN ('informs', 'discovered_during', 'blocks', 'required_context'))
);

CREATE INDEX IF NOT EXISTS idx_fact_links_task ON fact_links(task_id);

CREATE TABLE IF NOT EXISTS task_events (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id    INTEGER NOT NULL REFERENCES tasks(id),
    event_type TEXT NOT NULL,
    actor      TEXT DEFAULT '',
    old_value  TEXT,
    new_value  TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_task_events_task ON task_events(task_id, created_at);

-- FTS5 full-text search with sync triggers
CREATE VIRTUAL TABLE IF NOT EXISTS plans_fts USING fts5(
    name, description, content, content='plans', content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS plans_fts_insert AFTER INSERT ON plans BEGIN
    INSERT INTO plans_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS plans_fts_update AFTER UPDATE OF name, description, content ON plans BEGIN
    INSERT INTO plans_fts(plans_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
    INSERT INTO plans_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS plans_fts_delete AFTER DELETE ON plans BEGIN
    INSERT INTO plans_fts(plans_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
END;

CREATE VIRTUAL TABLE IF NOT EXISTS tasks_fts USING fts5(
    name, description, content, content='tasks', content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS tasks_fts_insert AFTER INSERT ON tasks BEGIN
    INSERT INTO tasks_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS tasks_fts_update AFTER UPDATE OF name, description, content ON tasks BEGIN
    INSERT INTO tasks_fts(tasks_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
    INSERT INTO tasks_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS tasks_fts_delete AFTER DELETE ON tasks BEGIN
    INSERT INTO tasks_fts(tasks_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
END;

CREATE VIRTUAL TABLE IF NOT EXISTS facts_fts USING fts5(
    name, description, content, content='facts', content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS facts_fts_insert AFTER INSERT ON facts BEGIN
    INSERT INTO facts_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS facts_fts_update AFTER UPDATE OF name, description, content ON facts BEGIN
    INSERT INTO facts_fts(facts_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
    INSERT INTO facts_fts(rowid, name, description, content)
        VALUES (new.id, new.name, new.description, new.content);
END;
CREATE TRIGGER IF NOT EXISTS facts_fts_delete AFTER DELETE ON facts BEGIN
    INSERT INTO facts_fts(facts_fts, rowid, name, description, content)
        VALUES('delete', old.id, old.name, old.description, old.content);
END;

-- Lessons learned from executing tasks; plan and task are optional scopes
CREATE TABLE IF NOT EXISTS lessons (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id           INTEGER REFERENCES plans(id),
    task_id           INTEGER REFERENCES tasks(id),
    lesson_type       TEXT NOT NULL,
    trigger_condition TEXT DEFAULT '',
    content           TEXT NOT NULL,
    confidence        REAL NOT NULL DEFAULT 0.5,
    times_validated   INTEGER NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL,

    CHECK (lesson_type IN ('success_pattern', 'failure_pattern', 'constraint', 'technique')),
    CHECK (confidence >= 0.0 AND confidence <= 1.0)
);

CREATE INDEX IF NOT EXISTS idx_lessons_plan ON lessons(plan_id);
CREATE INDEX IF NOT EXISTS idx_lessons_task ON lessons(task_id);

CREATE VIRTUAL TABLE IF NOT EXISTS lessons_fts USING fts5(
    trigger_condition, content, content='lessons', content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS lessons_fts_insert AFTER INSERT ON lessons BEGIN
    INSERT INTO lessons_fts(rowid, trigger_condition, content)
        VALUES (new.id, new.trigger_condition, new.content);
END;
CREATE TRIGGER IF NOT EXISTS lessons_fts_update AFTER UPDATE OF trigger_condition, content ON lessons BEGIN
    INSERT INTO lessons_fts(lessons_fts, rowid, trigger_condition, content)
        VALUES('delete', old.id, old.trigger_condition, old.content);
    INSERT INTO lessons_fts(rowid, trigger_condition, content)
        VALUES (new.id, new.trigger_condition, new.content);
END;
CREATE TRIGGER IF NOT EXISTS lessons_fts_delete AFTER DELETE ON lessons BEGIN
    INSERT INTO lessons_fts(lessons_fts, rowid, trigger_condition, content)
        VALUES('delete', old.id, old.trigger_condition, old.content);
END;

-- Reasoning traces: an ordered log of thoughts, actions and observations per plan
CREATE TABLE IF NOT EXISTS traces (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id      INTEGER NOT NULL REFERENCES plans(id),
    task_id      INTEGER REFERENCES tasks(id),
    trace_type   TEXT NOT NULL,
    sequence_num INTEGER NOT NULL,
    content      TEXT NOT NULL,
    metadata     TEXT,
    created_at   TEXT NOT NULL,

    UNIQUE (plan_id, sequence_num),
    CHECK (trace_type IN ('thought', 'action', 'observation', 'reflection'))
);

CREATE INDEX IF NOT EXISTS idx_traces_task ON traces(task_id, sequence_num);
"""

CURRENT_SCHEMA_VERSION = 2
