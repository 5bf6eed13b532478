"""Generation run: discover sources, build the schema once, emit artifacts.

``GenerateOps`` is the seam between the CLI and the pure pipeline. It owns
path resolution and writing; the parser, reducer and emitters never touch
the file system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from sqlitebridge.config.models import Framework, SqliteBridgeConfig
from sqlitebridge.core.diagnostics import Diagnostics, GenerationWarning, UnknownTypeWarning
from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.emit.database_service import DATABASE_SERVICE_MODULE, emit_database_service
from sqlitebridge.emit.dexie import emit_dexie_schema
from sqlitebridge.emit.migrations import emit_migration_runner
from sqlitebridge.emit.models import ModelNames, emit_model_index, emit_models
from sqlitebridge.emit.services import CONNECTION_MODULE, emit_database_connection, emit_services
from sqlitebridge.emit.typescript import relative_import
from sqlitebridge.files.ops import FileOps
from sqlitebridge.queries.ops import QueryFile, load_query_file, load_query_files
from sqlitebridge.schema.migrations import discover_migrations, load_migration
from sqlitebridge.schema.models import MigrationFile, SchemaModel
from sqlitebridge.schema.parser import parse_migration
from sqlitebridge.schema.reducer import reduce
from sqlitebridge.schema.types import describe_column

log = get_logger("generate")

ArtifactKind = Literal[
    "model", "model-index", "migration", "service", "connection", "database-service", "dexie"
]


@dataclass
class Artifact:
    """One generated file."""

    kind: ArtifactKind
    path: Path
    changed: bool
    # an existing file left in place instead of being regenerated
    kept: bool = False


@dataclass
class GenerationResult:
    """Files written by a run and the warnings collected along the way."""

    artifacts: list[Artifact] = field(default_factory=list)
    warnings: list[GenerationWarning] = field(default_factory=list)

    @property
    def changed(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.changed]


@dataclass
class _Run:
    """State shared by the emit steps of one invocation."""

    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    result: GenerationResult = field(default_factory=GenerationResult)

    def finish(self) -> GenerationResult:
        self.result.warnings = list(self.diagnostics)
        return self.result


class GenerateOps:
    """Generation operations for one project.

    Args:
        config: Resolved configuration.
        file_ops: File-system collaborator for reads and writes.
        root: Directory relative configuration paths are resolved against.
    """

    def __init__(self, config: SqliteBridgeConfig, file_ops: FileOps, root: Path) -> None:
        self._config = config
        self._files = file_ops
        self._root = root

    @property
    def config(self) -> SqliteBridgeConfig:
        return self._config

    def resolve(self, path: str | Path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._root / p

    # Inputs ---------------------------------------------------------------

    def load_migrations(self, file: str | Path | None = None) -> list[MigrationFile]:
        """Migrations in sequence order: the whole directory, or one file alone."""
        pattern = self._config.migration_pattern
        if file is not None:
            return [load_migration(self._files, self.resolve(file), pattern=pattern)]
        return discover_migrations(
            self._files, self.resolve(self._config.migrations_path), pattern=pattern
        )

    def build_schema(
        self, migrations: list[MigrationFile], diagnostics: Diagnostics | None = None
    ) -> SchemaModel:
        """Parse every migration, then fold all operations in sequence order.

        Raises:
            ParseError: A migration holds malformed DDL.
            SchemaConflictError: An operation does not fit the schema before it.
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        operations = [
            op
            for migration in migrations
            for op in parse_migration(migration, diagnostics=diagnostics)
        ]
        schema = reduce(operations, migrations)
        for table in schema.tables.values():
            for column in table.columns:
                if not describe_column(table, column).is_opaque:
                    continue
                diagnostics.add(
                    UnknownTypeWarning(
                        message=(
                            f"Unknown SQL type '{column.sql_type or '(none)'}' for "
                            f"{table.name}.{column.name}; generated as unknown"
                        ),
                        source=table.created_in.name if table.created_in else None,
                        table=table.name,
                        column=column.name,
                        sql_type=column.sql_type,
                    )
                )
        log.info(
            "schema_built",
            migrations=len(migrations),
            operations=len(schema.operations),
            tables=len(schema.tables),
        )
        return schema

    def load_queries(self, file: str | Path | None = None) -> list[QueryFile]:
        if file is not None:
            return [load_query_file(self._files, self.resolve(file))]
        return load_query_files(self._files, self.resolve(self._config.queries_path))

    # Writing --------------------------------------------------------------

    def _write(self, run: _Run, kind: ArtifactKind, path: Path, content: str) -> None:
        self._files.ensure_dir(path.parent)
        changed = self._files.write_text(path, content)
        run.result.artifacts.append(Artifact(kind=kind, path=path, changed=changed))
        log.info("artifact_written", kind=kind, path=str(path), changed=changed)

    def _models_dir(self) -> Path:
        return self.resolve(self._config.generated_path.models)

    def _services_dir(self) -> Path:
        return self.resolve(self._config.generated_path.services)

    def _database_service_path(self, output: Path | None) -> Path:
        if output is not None:
            return output
        configured = self._config.generated_path.database_service
        if configured is not None:
            return self.resolve(configured)
        return self._services_dir() / f"{DATABASE_SERVICE_MODULE}.ts"

    # Emit steps -----------------------------------------------------------

    def _emit_models(self, run: _Run, schema: SchemaModel, output: Path | None) -> None:
        out_dir = output or self._models_dir()
        for table, text in emit_models(schema).items():
            stem = ModelNames.for_table(table).file_stem
            self._write(run, "model", out_dir / f"{stem}.ts", text)
        self._write(run, "model-index", out_dir / "index.ts", emit_model_index(schema))

    def _emit_migrations(
        self, run: _Run, migrations: list[MigrationFile], output: Path | None
    ) -> None:
        path = output or self.resolve(self._config.generated_path.migrations)
        self._write(run, "migration", path, emit_migration_runner(migrations))

    def _emit_services(
        self,
        run: _Run,
        schema: SchemaModel,
        query_files: list[QueryFile],
        output: Path | None,
        framework: Framework,
        generate_hooks: bool,
    ) -> None:
        out_dir = output or self._services_dir()
        services = emit_services(
            schema,
            query_files,
            framework,
            generate_hooks=generate_hooks,
            models_import=relative_import(out_dir.as_posix(), self._models_dir().as_posix()),
            diagnostics=run.diagnostics,
        )
        self._write(
            run,
            "connection",
            out_dir / f"{CONNECTION_MODULE}.ts",
            emit_database_connection(framework, generate_hooks=generate_hooks),
        )
        for stem, text in services.items():
            self._write(run, "service", out_dir / f"{stem}.ts", text)

    def _emit_database_service(
        self,
        run: _Run,
        output: Path | None,
        framework: Framework,
        generate_hooks: bool,
        with_dexie: bool,
        replace: bool,
    ) -> None:
        path = self._database_service_path(output)
        if any(a.path == path for a in run.result.artifacts):
            raise SchemaConflictError.of(
                path.name, "GENERATE DATABASE SERVICE", f"file {path.name} is generated twice"
            )
        if not replace and self._files.exists(path):
            run.result.artifacts.append(
                Artifact(kind="database-service", path=path, changed=False, kept=True)
            )
            log.info("database_service_kept", path=str(path))
            return
        paths = self._config.generated_path
        directory = path.parent.as_posix()
        text = emit_database_service(
            framework,
            with_dexie=with_dexie,
            generate_hooks=generate_hooks,
            database_name=self._config.database_name,
            migrations_import=relative_import(directory, self.resolve(paths.migrations).as_posix()),
            dexie_import=relative_import(directory, self.resolve(paths.dexie).as_posix()),
            connection_import=relative_import(
                directory, (self._services_dir() / f"{CONNECTION_MODULE}.ts").as_posix()
            ),
        )
        self._write(run, "database-service", path, text)

    def _emit_dexie(self, run: _Run, schema: SchemaModel, output: Path | None) -> None:
        path = output or self.resolve(self._config.generated_path.dexie)
        text = emit_dexie_schema(
            schema.operations,
            database_name=self._config.database_name,
            models_import=relative_import(path.parent.as_posix(), self._models_dir().as_posix()),
        )
        self._write(run, "dexie", path, text)

    # Commands -------------------------------------------------------------

    def generate_models(
        self, *, file: str | Path | None = None, output: str | Path | None = None
    ) -> GenerationResult:
        run = _Run()
        schema = self.build_schema(self.load_migrations(file), run.diagnostics)
        self._emit_models(run, schema, self._optional(output))
        return run.finish()

    def generate_migrations(
        self, *, file: str | Path | None = None, output: str | Path | None = None
    ) -> GenerationResult:
        run = _Run()
        self._emit_migrations(run, self.load_migrations(file), self._optional(output))
        return run.finish()

    def generate_services(
        self,
        *,
        file: str | Path | None = None,
        output: str | Path | None = None,
        framework: Framework | None = None,
        generate_hooks: bool | None = None,
    ) -> GenerationResult:
        """Services for the full schema; ``file`` narrows the query files to one."""
        run = _Run()
        schema = self.build_schema(self.load_migrations(), run.diagnostics)
        fw = self._config.framework_config
        self._emit_services(
            run,
            schema,
            self.load_queries(file),
            self._optional(output),
            framework or fw.framework,
            fw.generate_hooks if generate_hooks is None else generate_hooks,
        )
        return run.finish()

    def generate_dexie(
        self, *, file: str | Path | None = None, output: str | Path | None = None
    ) -> GenerationResult:
        run = _Run()
        schema = self.build_schema(self.load_migrations(file), run.diagnostics)
        self._emit_dexie(run, schema, self._optional(output))
        return run.finish()

    def generate_database_service(
        self,
        *,
        output: str | Path | None = None,
        framework: Framework | None = None,
        generate_hooks: bool | None = None,
        with_dexie: bool | None = None,
        replace: bool = False,
    ) -> GenerationResult:
        """The platform-aware database service; an existing file is kept unless ``replace``."""
        run = _Run()
        fw = self._config.framework_config
        self._emit_database_service(
            run,
            self._optional(output),
            framework or fw.framework,
            fw.generate_hooks if generate_hooks is None else generate_hooks,
            self._config.with_dexie if with_dexie is None else with_dexie,
            replace,
        )
        return run.finish()

    def generate_all(
        self,
        *,
        file: str | Path | None = None,
        with_dexie: bool | None = None,
        replace_database_service: bool = False,
    ) -> GenerationResult:
        """Every artifact from one parse of the migrations directory, or of one file."""
        run = _Run()
        migrations = self.load_migrations(file)
        schema = self.build_schema(migrations, run.diagnostics)
        fw = self._config.framework_config
        dexie = self._config.with_dexie if with_dexie is None else with_dexie
        self._emit_models(run, schema, None)
        self._emit_migrations(run, migrations, None)
        self._emit_services(
            run, schema, self.load_queries(), None, fw.framework, fw.generate_hooks
        )
        self._emit_database_service(
            run, None, fw.framework, fw.generate_hooks, dexie, replace_database_service
        )
        if dexie:
            self._emit_dexie(run, schema, None)
        result = run.finish()
        log.info(
            "generation_complete",
            artifacts=len(result.artifacts),
            changed=len(result.changed),
            warnings=len(result.warnings),
        )
        return result

    def _optional(self, path: str | Path | None) -> Path | None:
        return self.resolve(path) if path is not None else None
