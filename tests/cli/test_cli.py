"""Tests for the sqlitebridge CLI.

Covers:
- global options (--project-dir, --dry-run, -v/-q)
- all, model, migration, service, dexie, database-service and config commands
- error reporting and exit codes
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner, Result

from sqlitebridge.cli.main import cli

DB = Path("src/app/core/database")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SQLITEBRIDGE__ variables from the outer environment out of tests."""
    for key in list(os.environ):
        if key.upper().startswith("SQLITEBRIDGE__"):
            monkeypatch.delenv(key)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "V1__create_todos.sql").write_text(
        "CREATE TABLE todos (id INTEGER PRIMARY KEY, title TEXT NOT NULL);\n"
    )
    (migrations / "V2__add_done.sql").write_text(
        "ALTER TABLE todos ADD COLUMN done BOOLEAN NOT NULL DEFAULT 0;\n"
    )
    return tmp_path


def invoke(runner: CliRunner, project: Path, *args: str) -> Result:
    return runner.invoke(cli, ["--project-dir", str(project), *args])


class TestGlobalOptions:
    """Tests for options shared by every command."""

    def test_help(self, runner: CliRunner) -> None:
        """Help lists the commands."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        commands = ("all", "model", "migration", "service", "dexie", "database-service", "config")
        for command in commands:
            assert command in result.output

    def test_verbose_and_quiet_exclusive(self, runner: CliRunner, project: Path) -> None:
        """-v and -q cannot be combined."""
        result = invoke(runner, project, "-v", "-q", "all")
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_project_dir_must_exist(self, runner: CliRunner, tmp_path: Path) -> None:
        """A missing project directory is a usage error."""
        result = runner.invoke(cli, ["--project-dir", str(tmp_path / "absent"), "all"])
        assert result.exit_code == 2


class TestGenerationCommands:
    """Tests for the generation commands."""

    def test_given_project_when_all_then_files_written(
        self, runner: CliRunner, project: Path
    ) -> None:
        """`all` writes every default artifact."""
        # When
        result = invoke(runner, project, "all")

        # Then
        assert result.exit_code == 0, result.output
        assert (project / DB / "models" / "todo.ts").is_file()
        assert (project / DB / "migrations.ts").is_file()
        assert (project / DB / "services" / "todos.service.ts").is_file()
        assert (project / DB / "services" / "database.service.ts").is_file()
        assert not (project / DB / "dexie-schema.ts").exists()

    def test_all_with_dexie(self, runner: CliRunner, project: Path) -> None:
        """--with-dexie adds the Dexie schema."""
        result = invoke(runner, project, "-q", "all", "--with-dexie")
        assert result.exit_code == 0, result.output
        assert (project / DB / "dexie-schema.ts").is_file()

    def test_all_single_file(self, runner: CliRunner, project: Path) -> None:
        """`all -f` builds every artifact from one migration."""
        migration = project / "migrations" / "V1__create_todos.sql"
        result = invoke(runner, project, "-q", "all", "-f", str(migration))
        assert result.exit_code == 0, result.output
        assert "version: 2," not in (project / DB / "migrations.ts").read_text()
        assert "done" not in (project / DB / "models" / "todo.ts").read_text()

    def test_dry_run(self, runner: CliRunner, project: Path) -> None:
        """--dry-run writes nothing."""
        result = invoke(runner, project, "--dry-run", "all")
        assert result.exit_code == 0, result.output
        assert not (project / "src").exists()

    def test_model_single_file(self, runner: CliRunner, project: Path) -> None:
        """`model -f` reads only the given migration."""
        migration = project / "migrations" / "V1__create_todos.sql"
        result = invoke(runner, project, "-q", "model", "-f", str(migration), "-o", "out")
        assert result.exit_code == 0, result.output
        assert "done" not in (project / "out" / "todo.ts").read_text()

    def test_migration(self, runner: CliRunner, project: Path) -> None:
        """`migration` writes the runner."""
        result = invoke(runner, project, "-q", "migration")
        assert result.exit_code == 0, result.output
        assert "version: 2," in (project / DB / "migrations.ts").read_text()

    def test_service_framework(self, runner: CliRunner, project: Path) -> None:
        """`service --framework` overrides the configured framework."""
        result = invoke(runner, project, "-q", "service", "--framework", "angular")
        assert result.exit_code == 0, result.output
        service = (project / DB / "services" / "todos.service.ts").read_text()
        assert "@Injectable({ providedIn: 'root' })" in service

    def test_service_rejects_unknown_framework(self, runner: CliRunner, project: Path) -> None:
        """Only supported frameworks are accepted."""
        result = invoke(runner, project, "service", "--framework", "vue")
        assert result.exit_code == 2

    def test_dexie(self, runner: CliRunner, project: Path) -> None:
        """`dexie` writes the Dexie schema."""
        result = invoke(runner, project, "-q", "dexie")
        assert result.exit_code == 0, result.output
        assert "this.version(2)" in (project / DB / "dexie-schema.ts").read_text()

    def test_database_service(self, runner: CliRunner, project: Path) -> None:
        """`database-service` writes the service with the chosen options."""
        result = invoke(
            runner, project, "-q", "database-service", "--framework", "react", "--with-dexie"
        )
        assert result.exit_code == 0, result.output
        text = (project / DB / "services" / "database.service.ts").read_text()
        assert "export function DatabaseProvider(" in text
        assert "import { AppDatabase } from '../dexie-schema';" in text

    def test_database_service_kept_then_replaced(self, runner: CliRunner, project: Path) -> None:
        """An existing database service survives unless replacement is requested."""
        path = project / DB / "services" / "database.service.ts"
        path.parent.mkdir(parents=True)
        path.write_text("// adapted by hand\n")

        kept = invoke(runner, project, "all")
        assert kept.exit_code == 0, kept.output
        assert path.read_text() == "// adapted by hand\n"

        replaced = invoke(runner, project, "-q", "all", "--replace-database-service")
        assert replaced.exit_code == 0, replaced.output
        assert "applyMigrations" in path.read_text()

    def test_config_file_paths(self, runner: CliRunner, project: Path) -> None:
        """Paths from the project config file are used."""
        (project / "sqlitebridge.config.yaml").write_text(
            "generatedPath:\n  models: ./lib/models\n"
        )
        result = invoke(runner, project, "-q", "model")
        assert result.exit_code == 0, result.output
        assert (project / "lib" / "models" / "todo.ts").is_file()


class TestErrors:
    """Tests for error reporting."""

    def test_missing_migrations_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        """Generation errors exit with status 1 and the error code."""
        result = invoke(runner, tmp_path, "all")
        assert result.exit_code == 1
        assert "MIGRATIONS_DIR_NOT_FOUND" in result.output

    def test_conflict(self, runner: CliRunner, project: Path) -> None:
        """Schema conflicts fail the run without writing."""
        (project / "migrations" / "V3__again.sql").write_text(
            "ALTER TABLE todos ADD COLUMN done INTEGER;"
        )
        result = invoke(runner, project, "all")
        assert result.exit_code == 1
        assert "SCHEMA_CONFLICT" in result.output
        assert not (project / "src").exists()

    def test_invalid_config(self, runner: CliRunner, project: Path) -> None:
        """Invalid configuration is reported as a CLI error."""
        (project / "sqlitebridge.config.yaml").write_text("databaseName: 'not valid'\n")
        result = invoke(runner, project, "all")
        assert result.exit_code == 1
        assert "CONFIG_INVALID_VALUE" in result.output


class TestConfigCommand:
    """Tests for the config command."""

    def test_prints_resolved_config(self, runner: CliRunner, project: Path) -> None:
        """The merged configuration is printed as YAML."""
        (project / "sqlitebridge.config.yaml").write_text(
            "frameworkConfig:\n  framework: react\n"
        )
        result = invoke(runner, project, "config")
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(result.stdout)
        assert data["framework_config"]["framework"] == "react"
        assert data["migrations_path"] == "./migrations"

    def test_env_overrides_file(
        self, runner: CliRunner, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment variables take precedence over the config file."""
        (project / "sqlitebridge.config.yaml").write_text("withDexie: false\n")
        monkeypatch.setenv("SQLITEBRIDGE__WITH_DEXIE", "true")
        result = invoke(runner, project, "config")
        assert yaml.safe_load(result.stdout)["with_dexie"] is True
