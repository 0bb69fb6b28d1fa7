from __future__ import annotations

from dataclasses import replace

from imgrel.core.config import ReleaseConfig, RuntimeConfig
from imgrel.release.dockerfile import render_dockerfile


def _stages(text: str) -> tuple[str, str]:
    build, runtime = text.split("FROM gcr.io/distroless/cc AS runtime")
    return build, runtime


def test_two_stages_with_defaults() -> None:
    text = render_dockerfile(ReleaseConfig())

    assert "FROM rust:latest AS build" in text
    assert "FROM gcr.io/distroless/cc AS runtime" in text
    assert "RUN cargo build --release" in text
    assert "ENV CARGO_NET_GIT_FETCH_WITH_CLI=true" in text
    assert 'CMD ["/demo/config-manager"]' in text


def test_unprivileged_identity_is_created_in_build_stage() -> None:
    build, _ = _stages(render_dockerfile(ReleaseConfig()))

    assert 'ENV APP_UID="10001"' in build
    assert 'ENV APP_USER="demo"' in build
    assert '--shell "/sbin/nologin"' in build
    assert '--home "/nonexistent"' in build
    assert "--no-create-home" in build
    assert "--disabled-password" in build


def test_runtime_copies_only_identity_records_and_binary() -> None:
    _, runtime = _stages(render_dockerfile(ReleaseConfig()))

    copies = [ln for ln in runtime.splitlines() if ln.startswith("COPY")]
    assert copies == [
        "COPY --from=build /identity/passwd /etc/passwd",
        "COPY --from=build /identity/group /etc/group",
        "COPY --from=build /demo/target/release/config-manager ./",
    ]
    assert "/etc/passwd /etc/passwd" not in runtime
    assert "USER demo:demo" in runtime


def test_provenance_is_embedded_as_labels_and_env() -> None:
    _, runtime = _stages(render_dockerfile(ReleaseConfig()))

    for arg in ("IMAGE_VERSION", "IMAGE_CREATE_DATE", "IMAGE_SOURCE_REVISION"):
        assert f"ARG {arg}" in runtime
        assert f'{arg}="${{{arg}}}"' in runtime
    assert 'org.opencontainers.image.version="${IMAGE_VERSION}"' in runtime
    assert 'org.opencontainers.image.created="${IMAGE_CREATE_DATE}"' in runtime
    assert 'org.opencontainers.image.revision="${IMAGE_SOURCE_REVISION}"' in runtime


def test_configured_uid_and_user() -> None:
    config = replace(ReleaseConfig(), runtime=RuntimeConfig(user="svc", uid=20002, workdir="/app"))
    text = render_dockerfile(config)

    assert 'ENV APP_UID="20002"' in text
    assert "USER svc:svc" in text
    assert 'CMD ["/app/config-manager"]' in text


def test_cargo_env_only_for_cargo_builds() -> None:
    config = replace(
        ReleaseConfig(),
        build=replace(ReleaseConfig().build, command="go build -o out/svc ./cmd/svc"),
    )
    assert "CARGO_NET_GIT_FETCH_WITH_CLI" not in render_dockerfile(config)
