"""Database service emitter: opens the store for the running platform.

The generated ``DatabaseService`` owns the Capacitor SQLite connection and
applies pending migrations through the generated runner. With the Dexie
mirror enabled it opens the generated Dexie class on the web instead.
Framework wrappers follow the table services: angular gets an injectable
plus providers, react a shared instance with a context provider and hooks.

Unlike the other artifacts the file is a starting point applications are
expected to adapt, so an existing copy is only replaced on request.
"""

from __future__ import annotations

from sqlitebridge.config.models import Framework
from sqlitebridge.core.logging import get_logger
from sqlitebridge.emit.services import CONNECTION_MODULE
from sqlitebridge.emit.typescript import CodeWriter, ts_string

log = get_logger("emit.database_service")

DATABASE_SERVICE_MODULE = "database.service"


def _write_header(w: CodeWriter, framework: Framework, with_dexie: bool) -> None:
    if with_dexie:
        store = "Capacitor SQLite on native platforms, Dexie on the web"
    else:
        store = "Capacitor SQLite on every platform"
    w.lines(
        [
            "/**",
            " * Generated by sqlitebridge. Regeneration keeps this file unless asked to",
            " * replace it, so local changes are safe.",
            f" * Database service ({framework}): {store}.",
            " */",
        ]
    )
    w.blank()


def _write_imports(
    w: CodeWriter,
    framework: Framework,
    *,
    hooks: bool,
    with_dexie: bool,
    database_name: str,
    migrations_import: str,
    dexie_import: str,
    connection_import: str,
) -> None:
    if framework == "angular":
        w.line("import { APP_INITIALIZER, Injectable, type Provider } from '@angular/core';")
    elif hooks:
        w.line(
            "import { createContext, createElement, type ReactNode, useContext, useEffect, "
            "useState } from 'react';"
        )
    w.line("import { Capacitor } from '@capacitor/core';")
    w.line(
        "import { CapacitorSQLite, SQLiteConnection, type SQLiteDBConnection } "
        "from '@capacitor-community/sqlite';"
    )
    if with_dexie:
        w.line(f"import {{ {database_name} }} from {ts_string(dexie_import)};")
    w.line(f"import {{ applyMigrations }} from {ts_string(migrations_import)};")
    token = "DATABASE_CONNECTION, " if framework == "angular" else ""
    w.line(f"import {{ {token}type DatabaseConnection }} from {ts_string(connection_import)};")
    w.blank()


def _write_types(w: CodeWriter, database_name: str) -> None:
    w.line(f"export const DATABASE_NAME = {ts_string(database_name)};")
    w.blank()
    w.line("/** Where rows live on the running platform. */")
    w.line("export type DatabaseStore = 'sqlite' | 'dexie';")
    w.blank()
    with w.block("export interface DatabaseStatus {"):
        w.line("ready: boolean;")
        w.line("platform: string;")
        w.line("store: DatabaseStore;")
        w.line("/** Migration versions applied when the database was opened */")
        w.line("appliedMigrations: number[];")
        w.line("error: string | null;")
    w.blank()


def _write_open(w: CodeWriter, *, with_dexie: bool, database_name: str) -> None:
    with w.block("private async open(): Promise<DatabaseStatus> {"):
        if with_dexie:
            with w.block("if (this.status.store === 'dexie') {"):
                w.line(f"const dexie = new {database_name}(DATABASE_NAME);")
                w.line("await dexie.open();")
                w.line("this.dexie = dexie;")
                w.line("this.status = { ...this.status, ready: true, error: null };")
                w.line("return this.status;")
        w.line("const sqlite = new SQLiteConnection(CapacitorSQLite);")
        with w.block("if (this.platform === 'web') {"):
            w.line("await sqlite.initWebStore();")
        w.line("const consistent = (await sqlite.checkConnectionsConsistency()).result;")
        w.line("const existing = (await sqlite.isConnection(DATABASE_NAME, false)).result;")
        w.line("const connection =")
        with w.indented():
            w.line("consistent && existing")
            with w.indented():
                w.line("? await sqlite.retrieveConnection(DATABASE_NAME, false)")
                w.line(
                    ": await sqlite.createConnection(DATABASE_NAME, false, 'no-encryption', 1, "
                    "false);"
                )
        w.line("await connection.open();")
        w.line("const applied = await applyMigrations(connection);")
        with w.block("if (this.platform === 'web') {"):
            w.line("await sqlite.saveToStore(DATABASE_NAME);")
        w.line("this.sqlite = sqlite;")
        w.line("this.connection = connection;")
        w.line(
            "this.status = { ...this.status, ready: true, appliedMigrations: applied, "
            "error: null };"
        )
        w.line("return this.status;")
    w.blank()


def _write_class(
    w: CodeWriter, framework: Framework, *, with_dexie: bool, database_name: str
) -> None:
    if framework == "angular":
        w.line("@Injectable({ providedIn: 'root' })")
    with w.block("export class DatabaseService {"):
        w.line("private readonly platform = Capacitor.getPlatform();")
        w.line("private sqlite: SQLiteConnection | null = null;")
        w.line("private connection: SQLiteDBConnection | null = null;")
        if with_dexie:
            w.line(f"private dexie: {database_name} | null = null;")
        w.line("private opening: Promise<DatabaseStatus> | null = null;")
        with w.block("private status: DatabaseStatus = {", "};"):
            w.line("ready: false,")
            w.line("platform: this.platform,")
            store = "this.platform === 'web' ? 'dexie' : 'sqlite'" if with_dexie else "'sqlite'"
            w.line(f"store: {store},")
            w.line("appliedMigrations: [],")
            w.line("error: null,")
        w.blank()

        w.line("/** Open the store and apply pending migrations; repeated calls share one run. */")
        with w.block("initialize(): Promise<DatabaseStatus> {"):
            with w.block("this.opening ??= this.open().catch((error: unknown) => {", "});"):
                w.line("this.opening = null;")
                w.line("const message = error instanceof Error ? error.message : String(error);")
                w.line("this.status = { ...this.status, error: message };")
                w.line("throw error;")
            w.line("return this.opening;")
        w.blank()
        _write_open(w, with_dexie=with_dexie, database_name=database_name)

        with w.block("getStatus(): DatabaseStatus {"):
            w.line("return this.status;")
        w.blank()

        w.line("/** The SQLite connection the generated services run on. */")
        with w.block("getConnection(): DatabaseConnection {"):
            with w.block("if (this.connection === null) {"):
                if with_dexie:
                    w.line(
                        "throw new Error(this.status.store === 'sqlite' "
                        "? 'Database is not initialized' "
                        ": 'SQLite is not used on this platform; use getDexie()');"
                    )
                else:
                    w.line("throw new Error('Database is not initialized');")
            w.line("return this.connection;")
        w.blank()

        if with_dexie:
            w.line("/** The Dexie database used on the web. */")
            with w.block(f"getDexie(): {database_name} {{"):
                with w.block("if (this.dexie === null) {"):
                    w.line(
                        "throw new Error(this.status.store === 'dexie' "
                        "? 'Database is not initialized' "
                        ": 'Dexie is not used on this platform; use getConnection()');"
                    )
                w.line("return this.dexie;")
            w.blank()

        with w.block("async close(): Promise<void> {"):
            with w.block("if (this.sqlite !== null && this.connection !== null) {"):
                w.line("await this.sqlite.closeConnection(DATABASE_NAME, false);")
            if with_dexie:
                w.line("this.dexie?.close();")
                w.line("this.dexie = null;")
            w.line("this.sqlite = null;")
            w.line("this.connection = null;")
            w.line("this.opening = null;")
            w.line("this.status = { ...this.status, ready: false, appliedMigrations: [] };")
    w.blank()


_ANGULAR_PROVIDERS = [
    "/** Open the database before the app starts and provide its connection to services. */",
    "export function provideDatabase(): Provider[] {",
    "  return [",
    "    {",
    "      provide: APP_INITIALIZER,",
    "      multi: true,",
    "      useFactory: (database: DatabaseService) => () => database.initialize(),",
    "      deps: [DatabaseService],",
    "    },",
    "    {",
    "      provide: DATABASE_CONNECTION,",
    "      useFactory: (database: DatabaseService) => database.getConnection(),",
    "      deps: [DatabaseService],",
    "    },",
    "  ];",
    "}",
]

_REACT_PROVIDER = [
    "const DatabaseContext = createContext<DatabaseStatus | null>(null);",
    "",
    "/** Opens the database on mount and shares its status with the tree below. */",
    "export function DatabaseProvider({ children }: { children: ReactNode }) {",
    "  const [status, setStatus] = useState<DatabaseStatus>(() => databaseService.getStatus());",
    "  useEffect(() => {",
    "    let active = true;",
    "    const update = () => {",
    "      if (active) {",
    "        setStatus(databaseService.getStatus());",
    "      }",
    "    };",
    "    databaseService.initialize().then(update, update);",
    "    return () => {",
    "      active = false;",
    "    };",
    "  }, []);",
    "  return createElement(DatabaseContext.Provider, { value: status }, children);",
    "}",
    "",
    "export function useDatabaseStatus(): DatabaseStatus {",
    "  const status = useContext(DatabaseContext);",
    "  if (status === null) {",
    "    throw new Error('useDatabaseStatus must be used inside a DatabaseProvider');",
    "  }",
    "  return status;",
    "}",
    "",
    "/** The connection for generated services, or null until SQLite is open. */",
    "export function useDatabaseConnection(): DatabaseConnection | null {",
    "  const status = useDatabaseStatus();",
    "  return status.ready && status.store === 'sqlite' ? databaseService.getConnection() : null;",
    "}",
]


def _react_dexie_hook(database_name: str) -> list[str]:
    return [
        "",
        "/** The Dexie database, or null until it is open or when SQLite is used. */",
        f"export function useDexie(): {database_name} | null {{",
        "  const status = useDatabaseStatus();",
        "  return status.ready && status.store === 'dexie' ? databaseService.getDexie() : null;",
        "}",
    ]


def emit_database_service(
    framework: Framework,
    *,
    with_dexie: bool = False,
    generate_hooks: bool = True,
    database_name: str = "AppDatabase",
    migrations_import: str = "../migrations",
    dexie_import: str = "../dexie-schema",
    connection_import: str = f"./{CONNECTION_MODULE}",
) -> str:
    """Render the database service for one framework.

    Args:
        framework: Wrapper style, as for the table services.
        with_dexie: Open the generated Dexie class on the web instead of SQLite.
        generate_hooks: Add the react context provider and hooks.
        database_name: SQLite database name and the Dexie class name.
        migrations_import: Module specifier of the migration runner.
        dexie_import: Module specifier of the Dexie schema.
        connection_import: Module specifier of the connection contract.
    """
    hooks = framework == "react" and generate_hooks
    w = CodeWriter()
    _write_header(w, framework, with_dexie)
    _write_imports(
        w,
        framework,
        hooks=hooks,
        with_dexie=with_dexie,
        database_name=database_name,
        migrations_import=migrations_import,
        dexie_import=dexie_import,
        connection_import=connection_import,
    )
    _write_types(w, database_name)
    _write_class(w, framework, with_dexie=with_dexie, database_name=database_name)
    if framework == "angular":
        w.lines(_ANGULAR_PROVIDERS)
    elif framework == "react":
        w.line("export const databaseService = new DatabaseService();")
        if hooks:
            w.blank()
            w.lines(_REACT_PROVIDER)
            if with_dexie:
                w.lines(_react_dexie_hook(database_name))
    log.debug("database_service_rendered", framework=framework, with_dexie=with_dexie)
    return w.render()
