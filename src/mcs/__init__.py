"""
mcs: container-backed development codespaces.

A codespace is a directory under the codespaces root (default ~/codespaces)
holding a cloned repository, a generated docker-compose.yml, an .env file and
a small metadata sidecar. Each codespace runs one container exposing a
browser-based editor (code-server on container port 8080) and, optionally, an
application port (container port 3000).

Layout:
- mcs.config          Settings loaded from environment (+ optional .env)
- mcs.logging_setup   Rotating file logging
- mcs.errors          Exception hierarchy surfaced by the CLI
- mcs.models          Pydantic models shared across modules
- mcs.deps            Docker client factory
- mcs.codespaces      Naming, images, compose generation, ownership, lifecycle, backups
- mcs.cli             `mcs` command-line entry point

Quick start (Python):

    from mcs.codespaces.lifecycle import CodespaceManager, CreateOptions

    manager = CodespaceManager()
    codespace = manager.create(CreateOptions(repository="octocat/hello-world"))
    print(codespace.vscode_url, codespace.password)

Every invocation is one-shot: there is no daemon. Container runtime semantics
are delegated to the Docker engine and its compose command.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
