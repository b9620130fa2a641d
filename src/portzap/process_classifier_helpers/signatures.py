"""Process signatures used by the classifier.

Every matcher is a pure predicate over the lower-cased command line, name,
working directory and port of a record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

from ..process_models import ProcessRecord

# Databases, caches, queues and container engines are never auto-killed.
INFRASTRUCTURE_KEYWORDS: Tuple[str, ...] = (
    "postgres",
    "postgresql",
    "psql",
    "redis",
    "redis-server",
    "mysql",
    "mysqld",
    "mongodb",
    "mongod",
    "docker",
    "dockerd",
    "rabbitmq",
    "elasticsearch",
    "kafka",
    "consul",
    "etcd",
)

NODE_DEV_TOOLS: Tuple[str, ...] = (
    "vite",
    "next",
    "react",
    "webpack",
    "nodemon",
    "ts-node",
    "tsx",
    "remix",
    "svelte",
    "nuxt",
    "astro",
    "gatsby",
    "parcel",
    "rollup",
    "esbuild",
    "swc",
    "turbo",
)

PYTHON_DEV_TOOLS: Tuple[str, ...] = (
    "flask",
    "django",
    "uvicorn",
    "gunicorn",
    "runserver",
    "fastapi",
    "starlette",
    "quart",
    "sanic",
)

GO_DEV_TOOLS: Tuple[str, ...] = ("run", "air", "fresh", "fiber", "gin", "echo")

RUBY_DEV_TOOLS: Tuple[str, ...] = ("rails", "rackup", "puma", "unicorn")

ELIXIR_DEV_TOOLS: Tuple[str, ...] = ("phoenix", "mix phx.server", "elixir")

PROJECT_MANIFESTS: Tuple[str, ...] = ("package.json", "go.mod", "requirements.txt", "pom.xml", "build.gradle")

GENERIC_RUNTIME_NAMES: Tuple[str, ...] = ("node", "python", "python3", "go")

DEV_PORT_BAND = range(3000, 10000)


@dataclass(frozen=True)
class RecordView:
    """Lower-cased fields of a record, computed once per classification."""

    command: str
    name: str
    working_directory: str
    port: int

    @classmethod
    def of(cls, record: ProcessRecord) -> "RecordView":
        return cls(
            command=record.command_line.lower(),
            name=record.name.lower(),
            working_directory=record.working_directory.lower(),
            port=record.port,
        )


Matcher = Callable[[RecordView], bool]


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    return any(needle in text for needle in needles)


def infrastructure(view: RecordView) -> bool:
    return _contains_any(view.command, INFRASTRUCTURE_KEYWORDS) or _contains_any(view.name, INFRASTRUCTURE_KEYWORDS)


def node_dev_tool(view: RecordView) -> bool:
    return "node" in view.command and _contains_any(view.command, NODE_DEV_TOOLS)


def js_runtime(view: RecordView) -> bool:
    return "bun" in view.command or "deno" in view.command or view.name in ("bun", "deno")


def vite(view: RecordView) -> bool:
    return "vite" in view.command


def python_dev_framework(view: RecordView) -> bool:
    return "python" in view.command and _contains_any(view.command, PYTHON_DEV_TOOLS)


def go_dev_tool(view: RecordView) -> bool:
    return "go" in view.command and _contains_any(view.command, GO_DEV_TOOLS)


def ruby_dev_server(view: RecordView) -> bool:
    return _contains_any(view.command, RUBY_DEV_TOOLS)


def elixir_dev_server(view: RecordView) -> bool:
    return _contains_any(view.command, ELIXIR_DEV_TOOLS)


def cargo_run_or_watch(view: RecordView) -> bool:
    return "cargo" in view.command and ("run" in view.command or "watch" in view.command)


def jvm_boot_run(view: RecordView) -> bool:
    gradle = "gradle" in view.command and "bootrun" in view.command
    maven = "mvn" in view.command and "spring-boot:run" in view.command
    return gradle or maven


def dotnet_watch(view: RecordView) -> bool:
    return "dotnet" in view.command and "watch" in view.command


def runtime_in_project_directory(view: RecordView) -> bool:
    return view.name in ("node", "python", "go") and _contains_any(view.working_directory, PROJECT_MANIFESTS)


def runtime_on_dev_port(view: RecordView) -> bool:
    # Any bare interpreter inside the dev band counts.
    return view.name in GENERIC_RUNTIME_NAMES and view.port in DEV_PORT_BAND


SAFE_DEV_SERVER_MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("node dev tool", node_dev_tool),
    ("javascript runtime", js_runtime),
    ("vite", vite),
    ("python dev framework", python_dev_framework),
    ("go dev tool", go_dev_tool),
    ("ruby dev server", ruby_dev_server),
    ("elixir dev server", elixir_dev_server),
    ("cargo run/watch", cargo_run_or_watch),
    ("jvm boot run", jvm_boot_run),
    ("dotnet watch", dotnet_watch),
    ("runtime in project directory", runtime_in_project_directory),
    ("runtime on dev port", runtime_on_dev_port),
)


__all__ = [
    "DEV_PORT_BAND",
    "INFRASTRUCTURE_KEYWORDS",
    "Matcher",
    "RecordView",
    "SAFE_DEV_SERVER_MATCHERS",
    "infrastructure",
]
