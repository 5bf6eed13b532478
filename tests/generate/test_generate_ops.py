"""Tests for generate/ops.py module.

Covers:
- GenerateOps.generate_all() end to end on a small project
- idempotent reruns and dry runs
- per-artifact commands with file and output overrides
- database service kept unless replaced
- error propagation from parsing and reduction
"""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlitebridge.config.models import (
    FrameworkConfig,
    GeneratedPathsConfig,
    SqliteBridgeConfig,
)
from sqlitebridge.core.diagnostics import OrphanQueryWarning, UnknownTypeWarning
from sqlitebridge.core.errors import (
    ErrorCode,
    MigrationSourceError,
    ParseError,
    SchemaConflictError,
)
from sqlitebridge.files.ops import DryRunFileOps, LocalFileOps
from sqlitebridge.generate.ops import GenerateOps

DB = Path("src/app/core/database")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project with two migrations and one query file."""
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "V1__create_todos.sql").write_text(
        "CREATE TABLE todos (\n"
        "    id INTEGER PRIMARY KEY,\n"
        "    title TEXT NOT NULL\n"
        ");\n"
        "INSERT INTO todos (title) VALUES ('First');\n"
    )
    (migrations / "V2__add_done.sql").write_text(
        "ALTER TABLE todos ADD COLUMN done BOOLEAN NOT NULL DEFAULT 0;\n"
        "CREATE INDEX todos_done ON todos (done);\n"
    )
    queries = tmp_path / "queries"
    queries.mkdir()
    (queries / "todos.sql").write_text("-- :findOpen\nSELECT * FROM todos WHERE done = 0;\n")
    return tmp_path


def make_ops(root: Path, config: SqliteBridgeConfig | None = None) -> GenerateOps:
    return GenerateOps(config or SqliteBridgeConfig(), LocalFileOps(), root)


class TestGenerateAll:
    """Tests for GenerateOps.generate_all."""

    def test_given_project_when_generated_then_all_artifacts_written(
        self, project: Path
    ) -> None:
        """Models, runner, services, connection and database service land at the default paths."""
        # When
        result = make_ops(project).generate_all()

        # Then
        assert (project / DB / "models" / "todo.ts").is_file()
        assert (project / DB / "models" / "index.ts").is_file()
        assert (project / DB / "migrations.ts").is_file()
        assert (project / DB / "services" / "todos.service.ts").is_file()
        assert (project / DB / "services" / "database-connection.ts").is_file()
        assert (project / DB / "services" / "database.service.ts").is_file()
        assert not (project / DB / "dexie-schema.ts").exists()
        assert [a.kind for a in result.artifacts] == [
            "model",
            "model-index",
            "migration",
            "connection",
            "service",
            "database-service",
        ]
        assert all(a.changed for a in result.artifacts)
        # The seed INSERT is the only statement that does not change the schema
        assert [w.kind for w in result.warnings] == ["SkippedStatementWarning"]

    def test_models_reflect_every_migration(self, project: Path) -> None:
        """The model includes columns added by later migrations."""
        make_ops(project).generate_all()
        model = (project / DB / "models" / "todo.ts").read_text()
        assert "done: boolean;" in model
        assert " * Source: V1__create_todos.sql" in model

    def test_services_import_models_relatively(self, project: Path) -> None:
        """Services find models next to their own directory."""
        make_ops(project).generate_all()
        service = (project / DB / "services" / "todos.service.ts").read_text()
        assert "from '../models/todo';" in service
        assert "async findOpen(): Promise<Todo[]> {" in service

    def test_rerun_changes_nothing(self, project: Path) -> None:
        """A second run over unchanged inputs reports no changes."""
        ops = make_ops(project)
        first = ops.generate_all()
        contents = {a.path: a.path.read_text() for a in first.artifacts}

        second = ops.generate_all()

        assert second.changed == []
        assert {a.path: a.path.read_text() for a in second.artifacts} == contents

    def test_dry_run_writes_nothing(self, project: Path) -> None:
        """Dry runs report artifacts without touching the disk."""
        file_ops = DryRunFileOps()
        result = GenerateOps(SqliteBridgeConfig(), file_ops, project).generate_all()
        assert result.artifacts
        assert not (project / "src").exists()
        assert set(file_ops.written) == {a.path for a in result.artifacts}

    def test_with_dexie(self, project: Path) -> None:
        """The Dexie schema is generated on request."""
        result = make_ops(project).generate_all(with_dexie=True)
        assert result.artifacts[-1].kind == "dexie"
        text = (project / DB / "dexie-schema.ts").read_text()
        assert "import type { TodoRow } from './models/todo';" in text
        assert "todos: '++id, done'," in text

    def test_with_dexie_from_config(self, project: Path) -> None:
        """The config default applies when no flag is given."""
        make_ops(project, SqliteBridgeConfig(with_dexie=True)).generate_all()
        assert (project / DB / "dexie-schema.ts").is_file()

    def test_framework_from_config(self, project: Path) -> None:
        """Services follow the configured framework."""
        config = SqliteBridgeConfig(framework_config=FrameworkConfig(framework="angular"))
        make_ops(project, config).generate_all()
        service = (project / DB / "services" / "todos.service.ts").read_text()
        assert "@Injectable({ providedIn: 'root' })" in service

    def test_unknown_types_warned(self, project: Path) -> None:
        """Columns with unknown types produce a warning and still generate."""
        (project / "migrations" / "V3__meta.sql").write_text(
            "ALTER TABLE todos ADD COLUMN meta JSONB;"
        )
        result = make_ops(project).generate_all()
        [warning] = [w for w in result.warnings if isinstance(w, UnknownTypeWarning)]
        assert (warning.table, warning.column, warning.sql_type) == ("todos", "meta", "JSONB")

    def test_orphan_queries_warned(self, project: Path) -> None:
        """Query files for unknown tables are reported."""
        (project / "queries" / "reports.sql").write_text("-- :all\nSELECT 1 AS one;")
        result = make_ops(project).generate_all()
        assert [w.table for w in result.warnings if isinstance(w, OrphanQueryWarning)] == [
            "reports"
        ]
        assert (project / DB / "services" / "reports.queries.ts").is_file()


class TestGenerationErrors:
    """Tests for errors raised during generation."""

    def test_order_sensitive_conflict(self, project: Path) -> None:
        """An operation that only fits an earlier schema is a conflict."""
        (project / "migrations" / "V3__drop.sql").write_text("DROP TABLE todos;")
        (project / "migrations" / "V4__late.sql").write_text(
            "ALTER TABLE todos ADD COLUMN late TEXT;"
        )
        with pytest.raises(SchemaConflictError, match="V4__late.sql"):
            make_ops(project).generate_all()
        assert not (project / "src").exists()

    def test_parse_error_names_file(self, project: Path) -> None:
        """Malformed DDL fails the run with the file and line."""
        (project / "migrations" / "V3__broken.sql").write_text("\nCREATE TABLE broken (id INTEGER;")
        with pytest.raises(ParseError) as exc_info:
            make_ops(project).generate_all()
        assert exc_info.value.source == "V3__broken.sql"
        assert exc_info.value.line == 2

    def test_missing_migrations_directory(self, tmp_path: Path) -> None:
        """A project without migrations cannot be generated."""
        with pytest.raises(MigrationSourceError) as exc_info:
            make_ops(tmp_path).generate_all()
        assert exc_info.value.code is ErrorCode.MIGRATIONS_DIR_NOT_FOUND


class TestSingleArtifacts:
    """Tests for the per-artifact commands."""

    def test_models_only(self, project: Path) -> None:
        """Model generation writes models and the index only."""
        result = make_ops(project).generate_models()
        assert {a.kind for a in result.artifacts} == {"model", "model-index"}

    def test_models_from_one_file(self, project: Path) -> None:
        """A single file is read on its own."""
        result = make_ops(project).generate_models(file="migrations/V1__create_todos.sql")
        model = (project / DB / "models" / "todo.ts").read_text()
        assert "done" not in model
        assert len(result.artifacts) == 2

    def test_migrations_output_override(self, project: Path) -> None:
        """An explicit output path replaces the configured one."""
        make_ops(project).generate_migrations(output="out/runner.ts")
        text = (project / "out" / "runner.ts").read_text()
        assert "version: 2," in text

    def test_services_framework_override(self, project: Path) -> None:
        """Command options override the configured framework."""
        make_ops(project).generate_services(framework="react", generate_hooks=False)
        service = (project / DB / "services" / "todos.service.ts").read_text()
        assert "constructor(private readonly db: DatabaseConnection) {}" in service
        assert "useMemo" not in service

    def test_services_output_adjusts_model_import(self, project: Path) -> None:
        """Moving services keeps the model import pointing at the models directory."""
        config = SqliteBridgeConfig(generated_path=GeneratedPathsConfig(models="./lib/models"))
        make_ops(project, config).generate_services(output="lib/data/services")
        service = (project / "lib" / "data" / "services" / "todos.service.ts").read_text()
        assert "from '../../models/todo';" in service

    def test_dexie_only(self, project: Path) -> None:
        """Dexie generation ignores the withDexie setting."""
        result = make_ops(project).generate_dexie()
        assert [a.kind for a in result.artifacts] == ["dexie"]
        text = (project / DB / "dexie-schema.ts").read_text()
        assert "// V2__add_done.sql:2: CREATE INDEX todos" in text


class TestDatabaseService:
    """Tests for the generated database service."""

    def test_given_project_when_generated_then_service_wired_to_runner(
        self, project: Path
    ) -> None:
        """Imports point at the runner and the connection contract."""
        # When
        make_ops(project).generate_database_service()

        # Then
        text = (project / DB / "services" / "database.service.ts").read_text()
        assert "import { applyMigrations } from '../migrations';" in text
        assert "import { type DatabaseConnection } from './database-connection';" in text
        assert "AppDatabase" not in text

    def test_with_dexie_imports_schema_class(self, project: Path) -> None:
        """The configured database name is the Dexie class imported on the web."""
        config = SqliteBridgeConfig(with_dexie=True, database_name="TodoDb")
        make_ops(project, config).generate_database_service()
        text = (project / DB / "services" / "database.service.ts").read_text()
        assert "import { TodoDb } from '../dexie-schema';" in text
        assert "export const DATABASE_NAME = 'TodoDb';" in text

    def test_existing_file_kept(self, project: Path) -> None:
        """A database service already on disk is left alone."""
        path = project / DB / "services" / "database.service.ts"
        path.parent.mkdir(parents=True)
        path.write_text("// adapted by hand\n")

        result = make_ops(project).generate_all()

        assert path.read_text() == "// adapted by hand\n"
        [artifact] = [a for a in result.artifacts if a.kind == "database-service"]
        assert artifact.kept is True
        assert artifact.changed is False

    def test_replace_overwrites(self, project: Path) -> None:
        """Replacing regenerates an existing database service."""
        path = project / DB / "services" / "database.service.ts"
        path.parent.mkdir(parents=True)
        path.write_text("// adapted by hand\n")

        result = make_ops(project).generate_database_service(framework="angular", replace=True)

        assert "@Injectable({ providedIn: 'root' })" in path.read_text()
        assert [(a.kind, a.changed, a.kept) for a in result.artifacts] == [
            ("database-service", True, False)
        ]

    def test_configured_path(self, project: Path) -> None:
        """A configured location moves the file and its relative imports."""
        config = SqliteBridgeConfig(
            generated_path=GeneratedPathsConfig(database_service="./src/app/database.service.ts")
        )
        make_ops(project, config).generate_database_service()
        text = (project / "src" / "app" / "database.service.ts").read_text()
        assert "import { applyMigrations } from './core/database/migrations';" in text
        assert (
            "import { type DatabaseConnection } "
            "from './core/database/services/database-connection';" in text
        )

    def test_table_service_file_conflict(self, project: Path) -> None:
        """A table whose service would overwrite the database service is a conflict."""
        (project / "migrations" / "V3__database.sql").write_text(
            "CREATE TABLE database (id INTEGER PRIMARY KEY);"
        )
        with pytest.raises(SchemaConflictError, match="database.service.ts"):
            make_ops(project).generate_all()
