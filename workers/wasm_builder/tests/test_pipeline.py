"""End-to-end pipeline tests with a fake toolchain."""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from wasm_builder import runner as pipeline
from wasm_builder.core.conversion import FunctionTool
from wasm_builder.errors import BuildError, ConversionError, ManifestError, NoArtifactTarget
from wasm_builder.io.manifest import read_manifest
from wasm_builder.io.schema import CANONICAL_ARTIFACTS, MANIFEST_FILENAME, hash_file
from wasm_builder.policy.profile import BuildConfig, StageName
from wasm_builder.runner import run_pipeline
from wasm_builder.tests.fakes import COMMIT, FakeRunner, cargo_metadata, target


def _ticking_clock(start: datetime):
    """Each call advances one second, so every packaging gets its own directory."""
    state = {"t": start - timedelta(seconds=1)}

    def clock():
        state["t"] += timedelta(seconds=1)
        return state["t"]

    return clock


class TestPowerCalculator:

    def test_full_build(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        result = run_pipeline(
            project_root,
            runner=fake_runner,
            arch="x86",
            clock=fixed_clock,
            environ=environ,
        )

        out = project_root / "artifacts" / "x86" / "20250314T092653"
        assert Path(result.packaged.directory) == out
        assert sorted(p.name for p in out.iterdir()) == sorted(CANONICAL_ARTIFACTS + (MANIFEST_FILENAME,))

        manifest = read_manifest(out)
        assert len(manifest.hashes) == 6
        assert [p.key for p in manifest.provenance] == ["commit", "rustc", "cargo", "target", "build_time"]
        assert manifest.provenance_map()["commit"] == COMMIT
        assert manifest.provenance_map()["target"] == "x86_64-unknown-linux-gnu"
        for name, digest in manifest.hash_map().items():
            assert hash_file(out / name) == digest

    def test_manifest_is_written_last(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        result = run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ)
        manifest_mtime = result.manifest_path.stat().st_mtime_ns
        for artifact in result.packaged.artifacts:
            copy = Path(result.packaged.directory) / artifact.name
            assert copy.stat().st_mtime_ns <= manifest_mtime

    def test_build_uses_isolated_dir_and_flags(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        result = run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ)
        (build,) = fake_runner.calls_to("cargo build")
        assert build.env["CARGO_ENCODED_RUSTFLAGS"] == result.environment.encoded_rustflags
        assert result.paths.wasm.is_relative_to(project_root / "target" / "deterministic")
        assert result.paths.rwasm.parent == project_root / "target" / "deterministic" / "scratch"

    def test_target_falls_back_to_host_triple(self, project_root: Path, fake_runner: FakeRunner, fixed_clock):
        fake_runner.host_triple = "aarch64-unknown-linux-gnu"
        result = run_pipeline(project_root, runner=fake_runner, arch="arm", clock=fixed_clock, environ={})
        assert read_manifest(Path(result.packaged.directory)).provenance_map()["target"] == "aarch64-unknown-linux-gnu"

    def test_disabled_stages_not_packaged(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        config = BuildConfig.create(disabled_stages=["rwasm", "cwasm"])
        result = run_pipeline(
            project_root, config=config, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ,
        )
        assert result.packaged.skipped == ["lib.rwasm", "lib.cwasm"]
        assert len(read_manifest(Path(result.packaged.directory)).hashes) == 4

    def test_custom_output_root(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock, tmp_path: Path):
        out = tmp_path / "shared-artifacts"
        result = run_pipeline(
            project_root, runner=fake_runner, output_root=out, arch="x86", clock=fixed_clock, environ=environ,
        )
        assert Path(result.packaged.directory).parent.parent == out


class TestDeterminism:

    def test_repeat_builds_hash_identically(self, project_root: Path, fake_runner: FakeRunner, environ: dict):
        clock = _ticking_clock(datetime(2025, 3, 14, 9, 0, 0, tzinfo=timezone.utc))
        first = run_pipeline(project_root, runner=fake_runner, arch="x86", clock=clock, environ=environ)
        second = run_pipeline(project_root, runner=fake_runner, arch="x86", clock=clock, environ=environ)

        assert first.packaged.directory != second.packaged.directory
        assert first.packaged.hashes() == second.packaged.hashes()
        assert first.environment.rustflags == second.environment.rustflags

    def test_arch_only_changes_the_path(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        x86 = run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ)
        arm = run_pipeline(project_root, runner=fake_runner, arch="arm", clock=fixed_clock, environ=environ)
        assert x86.packaged.hashes() == arm.packaged.hashes()
        assert Path(x86.packaged.directory).name == Path(arm.packaged.directory).name


class TestFailFast:

    def test_build_failure_leaves_nothing_packaged(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        fake_runner.build_exit_code = 101
        with pytest.raises(BuildError):
            run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ)
        assert not (project_root / "artifacts").exists()
        assert fake_runner.calls_to("wasm2wat") == []

    def test_conversion_failure_leaves_nothing_packaged(self, project_root: Path, fake_runner: FakeRunner, environ: dict, fixed_clock):
        fake_runner.fail = {"wasmtime": 1}
        with pytest.raises(ConversionError) as exc:
            run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ=environ)
        assert exc.value.stage == "cwasm"
        assert not (project_root / "artifacts").exists()

    def test_unresolvable_target_stops_before_build(self, project_root: Path, environ: dict, fixed_clock):
        metadata = cargo_metadata(project_root / "target", {"power_calculator": [target("power_calculator", "lib")]})
        runner = FakeRunner(metadata=metadata)
        with pytest.raises(NoArtifactTarget):
            run_pipeline(project_root, runner=runner, arch="x86", clock=fixed_clock, environ=environ)
        assert runner.calls_to("cargo build") == []

    def test_missing_target_triple(self, project_root: Path, fake_runner: FakeRunner, fixed_clock):
        fake_runner.failing_probes = {"rustc -vV"}
        with pytest.raises(ManifestError):
            run_pipeline(project_root, runner=fake_runner, arch="x86", clock=fixed_clock, environ={})


class TestStageIndependence:

    SIBLINGS = ("lib.wasm", "lib.wat", "lib.stripped.wasm", "lib.stripped.wat", "lib.rwasm")

    def _build(self, project_root: Path, metadata: dict, environ: dict, clock, output_root: Path, **kwargs):
        return run_pipeline(
            project_root,
            runner=FakeRunner(metadata=metadata),
            output_root=output_root,
            arch="x86",
            clock=clock,
            environ=environ,
            **kwargs,
        )

    def test_missing_stage_output(self, tmp_path: Path, project_root: Path, single_bin_metadata: dict,
                                  environ: dict, fixed_clock):
        full = self._build(project_root, single_bin_metadata, environ, fixed_clock, tmp_path / "full")
        partial = self._build(
            project_root, single_bin_metadata, environ, fixed_clock, tmp_path / "partial",
            config=BuildConfig.create(disabled_stages=["cwasm"]),
        )

        full_hashes = full.packaged.hashes()
        partial_hashes = partial.packaged.hashes()
        assert partial.packaged.skipped == ["lib.cwasm"]
        assert "lib.cwasm" not in partial_hashes
        assert {n: partial_hashes[n] for n in self.SIBLINGS} == {n: full_hashes[n] for n in self.SIBLINGS}
        assert not (Path(partial.packaged.directory) / "lib.cwasm").exists()

    def test_corrupted_stage_output(self, tmp_path: Path, project_root: Path, single_bin_metadata: dict,
                                    environ: dict, fixed_clock):
        full = self._build(project_root, single_bin_metadata, environ, fixed_clock, tmp_path / "full")
        corrupted = self._build(
            project_root, single_bin_metadata, environ, fixed_clock, tmp_path / "corrupted",
            tools={StageName.CWASM: FunctionTool(lambda data: b"\x00garbage")},
        )

        full_hashes = full.packaged.hashes()
        corrupted_hashes = corrupted.packaged.hashes()
        assert corrupted.packaged.skipped == []
        assert corrupted_hashes["lib.cwasm"] != full_hashes["lib.cwasm"]
        assert {n: corrupted_hashes[n] for n in self.SIBLINGS} == {n: full_hashes[n] for n in self.SIBLINGS}


class TestDefaultRunner:

    def test_partial_environ_keeps_process_environment(self, monkeypatch, project_root: Path,
                                                       single_bin_metadata: dict, fixed_clock):
        monkeypatch.setenv("PATH", "/usr/local/cargo/bin:/usr/bin")
        created = []

        def make_runner(base_env=None):
            created.append(dict(base_env))
            return FakeRunner(metadata=single_bin_metadata)

        monkeypatch.setattr(pipeline, "SubprocessRunner", make_runner)
        result = run_pipeline(project_root, arch="x86", clock=fixed_clock, environ={"CARGO_HOME": "/opt/cargo"})

        [child_env] = created
        assert child_env["PATH"] == "/usr/local/cargo/bin:/usr/bin"
        assert child_env["CARGO_HOME"] == "/opt/cargo"
        assert "--remap-path-prefix=/opt/cargo=/cargo" in result.environment.rustflags
        assert (Path(result.packaged.directory) / MANIFEST_FILENAME).is_file()
