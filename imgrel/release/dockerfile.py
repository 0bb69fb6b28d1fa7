"""Two-stage Dockerfile generation.

Stage ``build`` compiles the service with the toolchain image and creates
the unprivileged runtime identity. Stage ``runtime`` starts from a minimal
base and receives only the binary plus the ``passwd``/``group`` lines of
that identity, never the toolchain's full identity database.

Provenance arrives as build args and is kept in the image both as OCI
labels (``docker image inspect``) and as environment variables (visible to
the running service).
"""

from __future__ import annotations

import json
from pathlib import PurePosixPath

from imgrel.core.config import ReleaseConfig

__all__ = [
    "BUILD_ARGS",
    "COMPILE_STAGE",
    "RUNTIME_STAGE",
    "render_dockerfile",
]

COMPILE_STAGE = "build"
RUNTIME_STAGE = "runtime"

# build arg -> OCI annotation key
BUILD_ARGS: dict[str, str] = {
    "IMAGE_VERSION": "org.opencontainers.image.version",
    "IMAGE_CREATE_DATE": "org.opencontainers.image.created",
    "IMAGE_SOURCE_REVISION": "org.opencontainers.image.revision",
}

_IDENTITY_DIR = "/identity"


def render_dockerfile(config: ReleaseConfig) -> str:
    """Render the Dockerfile for ``config``.

    Returns:
        Dockerfile content with LF line endings
    """
    build = config.build
    runtime = config.runtime
    workdir = PurePosixPath(runtime.workdir)
    artifact = workdir / build.artifact_dir / build.binary
    entrypoint = workdir / build.binary

    lines = [
        "# syntax=docker/dockerfile:1",
        "# Generated by imgrel. Edit imgrel.toml instead of this file.",
        "",
        f"FROM {build.toolchain_image} AS {COMPILE_STAGE}",
        "",
        "RUN update-ca-certificates",
        "",
        "# Unprivileged runtime identity",
        f'ENV APP_USER="{runtime.user}"',
        f'ENV APP_UID="{runtime.uid}"',
        "",
        'RUN addgroup --gid "${APP_UID}" "${APP_USER}" \\',
        " && adduser \\",
        "    --disabled-password \\",
        '    --gecos "" \\',
        '    --home "/nonexistent" \\',
        '    --shell "/sbin/nologin" \\',
        "    --no-create-home \\",
        '    --uid "${APP_UID}" \\',
        '    --ingroup "${APP_USER}" \\',
        '    "${APP_USER}"',
        "",
        f"RUN mkdir -p {_IDENTITY_DIR} \\",
        f' && grep "^${{APP_USER}}:" /etc/passwd > {_IDENTITY_DIR}/passwd \\',
        f' && grep "^${{APP_USER}}:" /etc/group > {_IDENTITY_DIR}/group',
        "",
        f"WORKDIR {workdir}",
        "",
    ]

    if build.command.split()[0] == "cargo":
        lines += ["ENV CARGO_NET_GIT_FETCH_WITH_CLI=true", ""]

    lines += [
        "COPY ./ .",
        "",
        f"RUN {build.command}",
        "",
        "## Final image",
        f"FROM {runtime.base_image} AS {RUNTIME_STAGE}",
        "",
    ]

    lines += [f"ARG {arg}" for arg in BUILD_ARGS]
    lines.append("")

    labels = [f'{key}="${{{arg}}}"' for arg, key in BUILD_ARGS.items()]
    lines += _continued("LABEL", labels)
    envs = [f'{arg}="${{{arg}}}"' for arg in BUILD_ARGS]
    lines += _continued("ENV", envs)
    lines.append("")

    lines += [
        f"COPY --from={COMPILE_STAGE} {_IDENTITY_DIR}/passwd /etc/passwd",
        f"COPY --from={COMPILE_STAGE} {_IDENTITY_DIR}/group /etc/group",
        "",
        f"WORKDIR {workdir}",
        "",
        f"COPY --from={COMPILE_STAGE} {artifact} ./",
        "",
        f"USER {runtime.user}:{runtime.user}",
        "",
        f"CMD {json.dumps([str(entrypoint)])}",
        "",
    ]
    return "\n".join(lines)


def _continued(instruction: str, items: list[str]) -> list[str]:
    """One instruction spread over backslash-continued lines."""
    out: list[str] = []
    for i, item in enumerate(items):
        prefix = f"{instruction} " if i == 0 else " " * (len(instruction) + 1)
        suffix = " \\" if i < len(items) - 1 else ""
        out.append(f"{prefix}{item}{suffix}")
    return out
