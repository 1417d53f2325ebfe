"""Tests for resource resolution and its lookup order."""

import pytest

from mikflash.config import EnvironmentProvider, OPENOCD_ENV, UPLOADER_ENV
from mikflash.errors import ResolutionError
from mikflash.model import ResourceKind, Tier
from mikflash.resolver import Resolver

from conftest import FakeRunner


class RecordingEnv(EnvironmentProvider):
    def __init__(self, environ=None):
        super().__init__(environ or {})
        self.lookups = []

    def get(self, name):
        self.lookups.append(name)
        return super().get(name)


class RecordingWhich:
    def __init__(self, answer=None):
        self.answer = answer
        self.calls = []

    def __call__(self, name):
        self.calls.append(name)
        return self.answer


def make_resolver(env=None, runner=None, which=None):
    return Resolver(
        env=env if env is not None else RecordingEnv(),
        runner=runner or FakeRunner(),
        which=which or RecordingWhich(),
    )


def make_uploader(path):
    path.mkdir(parents=True)
    (path / "mik32_upload.py").write_text("")
    return path


class TestArtifact:
    """Artifact: override -> flash/app.hex."""

    def test_existing_override_wins(self, project, tmp_path):
        image = tmp_path / "prebuilt.hex"
        image.write_text(":00000001FF\n")
        (project / "flash" / "app.hex").write_text("")

        res = make_resolver().resolve(ResourceKind.ARTIFACT, image, project)

        assert res.path == image
        assert res.tier is Tier.OVERRIDE

    def test_missing_override_does_not_fall_through(self, project, tmp_path):
        (project / "flash" / "app.hex").write_text("")

        with pytest.raises(ResolutionError) as exc:
            make_resolver().resolve(ResourceKind.ARTIFACT, tmp_path / "nope.hex", project)

        assert exc.value.resource is ResourceKind.ARTIFACT
        assert exc.value.attempted_tiers == [Tier.OVERRIDE]

    def test_project_default(self, project):
        (project / "flash" / "app.hex").write_text("")

        res = make_resolver().resolve(ResourceKind.ARTIFACT, None, project)

        assert res.path == project / "flash" / "app.hex"
        assert res.tier is Tier.PROJECT_DEFAULT

    def test_nothing_found(self, project):
        with pytest.raises(ResolutionError) as exc:
            make_resolver().resolve(ResourceKind.ARTIFACT, None, project)

        assert exc.value.attempted_tiers == [Tier.OVERRIDE, Tier.PROJECT_DEFAULT]

    def test_output_override_only_needs_parent(self, project, tmp_path):
        out = tmp_path / "out.hex"

        res = make_resolver().resolve(ResourceKind.ARTIFACT, out, project, must_exist=False)

        assert res.path == out
        assert res.tier is Tier.OVERRIDE

    def test_output_override_parent_missing(self, project, tmp_path):
        with pytest.raises(ResolutionError):
            make_resolver().resolve(
                ResourceKind.ARTIFACT, tmp_path / "missing" / "out.hex", project, must_exist=False
            )

    def test_output_default_needs_flash_dir(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text("")

        with pytest.raises(ResolutionError):
            make_resolver().resolve(ResourceKind.ARTIFACT, None, tmp_path, must_exist=False)

        (tmp_path / "flash").mkdir()
        res = make_resolver().resolve(ResourceKind.ARTIFACT, None, tmp_path, must_exist=False)
        assert res.path == tmp_path / "flash" / "app.hex"

    def test_relative_override_is_taken_from_project(self, project, tmp_path, monkeypatch):
        (project / "flash" / "app.hex").write_text("")
        monkeypatch.chdir(tmp_path)

        res = make_resolver().resolve(ResourceKind.ARTIFACT, "flash/app.hex", project)

        assert res.path == project / "flash" / "app.hex"
        assert res.tier is Tier.OVERRIDE

    def test_relative_output_override_is_taken_from_project(self, project, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        res = make_resolver().resolve(
            ResourceKind.ARTIFACT, "flash/custom.hex", project, must_exist=False
        )

        assert res.path == project / "flash" / "custom.hex"


class TestUploaderDir:
    """Uploader: override -> $MIK32_UPLOADER_PATH -> flash/mik32-uploader."""

    def test_override_skips_environment(self, project, tmp_path):
        uploader = make_uploader(tmp_path / "custom-uploader")
        env = RecordingEnv({UPLOADER_ENV: str(tmp_path / "elsewhere")})

        res = make_resolver(env=env).resolve(ResourceKind.UPLOADER_DIR, uploader, project)

        assert res.path == uploader
        assert res.tier is Tier.OVERRIDE
        assert env.lookups == []

    def test_missing_override_is_terminal(self, project, tmp_path):
        env_uploader = make_uploader(tmp_path / "env-uploader")
        env = RecordingEnv({UPLOADER_ENV: str(env_uploader)})

        with pytest.raises(ResolutionError) as exc:
            make_resolver(env=env).resolve(ResourceKind.UPLOADER_DIR, tmp_path / "missing", project)

        assert exc.value.attempted_tiers == [Tier.OVERRIDE]
        assert env.lookups == []

    def test_override_without_driver_script(self, project, tmp_path):
        bare = tmp_path / "bare"
        bare.mkdir()

        with pytest.raises(ResolutionError) as exc:
            make_resolver().resolve(ResourceKind.UPLOADER_DIR, bare, project)

        assert "mik32_upload.py" in exc.value.message

    def test_environment_beats_project(self, project, tmp_path):
        env_uploader = make_uploader(tmp_path / "env-uploader")
        env = RecordingEnv({UPLOADER_ENV: str(env_uploader)})

        res = make_resolver(env=env).resolve(ResourceKind.UPLOADER_DIR, None, project)

        assert res.path == env_uploader
        assert res.tier is Tier.ENVIRONMENT

    def test_environment_without_driver_script_does_not_fall_through(self, project, tmp_path):
        bare = tmp_path / "bare"
        bare.mkdir()
        env = RecordingEnv({UPLOADER_ENV: str(bare)})

        with pytest.raises(ResolutionError) as exc:
            make_resolver(env=env).resolve(ResourceKind.UPLOADER_DIR, None, project)

        assert exc.value.attempted_tiers == [Tier.OVERRIDE, Tier.ENVIRONMENT]

    def test_empty_environment_variable_is_unset(self, project):
        env = RecordingEnv({UPLOADER_ENV: ""})

        res = make_resolver(env=env).resolve(ResourceKind.UPLOADER_DIR, None, project)

        assert res.tier is Tier.PROJECT_DEFAULT
        assert res.path == project / "flash" / "mik32-uploader"

    def test_nothing_found(self, tmp_path):
        with pytest.raises(ResolutionError) as exc:
            make_resolver().resolve(ResourceKind.UPLOADER_DIR, None, tmp_path)

        assert exc.value.attempted_tiers == [Tier.OVERRIDE, Tier.ENVIRONMENT, Tier.PROJECT_DEFAULT]
        assert exc.value.hint

    def test_relative_override_is_taken_from_project(self, project, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        res = make_resolver().resolve(ResourceKind.UPLOADER_DIR, "flash/mik32-uploader", project)

        assert res.path == project / "flash" / "mik32-uploader"
        assert res.tier is Tier.OVERRIDE


class TestOpenocd:
    """openocd: override -> $MIK32_OPENOCD_PATH -> flash/openocd/bin/openocd -> PATH."""

    def test_override_wins(self, project, tmp_path):
        env = RecordingEnv({OPENOCD_ENV: "/opt/openocd/bin/openocd"})
        which = RecordingWhich("/usr/bin/openocd")
        runner = FakeRunner()

        res = make_resolver(env=env, runner=runner, which=which).resolve(
            ResourceKind.DEBUG_ADAPTER_EXEC, "/custom/openocd", project
        )

        assert str(res.path) == "/custom/openocd"
        assert res.tier is Tier.OVERRIDE
        assert env.lookups == []
        assert which.calls == []
        assert runner.probes() == ["/custom/openocd"]

    def test_unusable_override_is_terminal(self, project):
        which = RecordingWhich("/usr/bin/openocd")
        runner = FakeRunner(missing=["/custom/openocd"])

        with pytest.raises(ResolutionError) as exc:
            make_resolver(runner=runner, which=which).resolve(
                ResourceKind.DEBUG_ADAPTER_EXEC, "/custom/openocd", project
            )

        assert exc.value.attempted_tiers == [Tier.OVERRIDE]
        assert which.calls == []

    def test_environment(self, project):
        env = RecordingEnv({OPENOCD_ENV: "/opt/openocd/bin/openocd"})
        which = RecordingWhich("/usr/bin/openocd")

        res = make_resolver(env=env, which=which).resolve(ResourceKind.DEBUG_ADAPTER_EXEC, None, project)

        assert str(res.path) == "/opt/openocd/bin/openocd"
        assert res.tier is Tier.ENVIRONMENT
        assert which.calls == []

    def test_environment_value_must_run(self, project):
        env = RecordingEnv({OPENOCD_ENV: "/opt/openocd/bin/openocd"})
        runner = FakeRunner(missing=["/opt/openocd/bin/openocd"])
        which = RecordingWhich("/usr/bin/openocd")

        with pytest.raises(ResolutionError):
            make_resolver(env=env, runner=runner, which=which).resolve(
                ResourceKind.DEBUG_ADAPTER_EXEC, None, project
            )
        assert which.calls == []

    def test_project_default(self, project):
        which = RecordingWhich("/usr/bin/openocd")

        res = make_resolver(which=which).resolve(ResourceKind.DEBUG_ADAPTER_EXEC, None, project)

        assert res.path == project / "flash" / "openocd" / "bin" / "openocd"
        assert res.tier is Tier.PROJECT_DEFAULT
        assert which.calls == []

    def test_system_path(self, project):
        (project / "flash" / "openocd" / "bin" / "openocd").unlink()
        which = RecordingWhich("/usr/bin/openocd")

        res = make_resolver(which=which).resolve(ResourceKind.DEBUG_ADAPTER_EXEC, None, project)

        assert str(res.path) == "/usr/bin/openocd"
        assert res.tier is Tier.SYSTEM_PATH
        assert which.calls == ["openocd"]

    def test_nothing_found(self, project):
        (project / "flash" / "openocd" / "bin" / "openocd").unlink()

        with pytest.raises(ResolutionError) as exc:
            make_resolver(which=RecordingWhich(None)).resolve(ResourceKind.DEBUG_ADAPTER_EXEC, None, project)

        assert exc.value.attempted_tiers == [
            Tier.OVERRIDE,
            Tier.ENVIRONMENT,
            Tier.PROJECT_DEFAULT,
            Tier.SYSTEM_PATH,
        ]

    def test_bare_override_is_looked_up_on_path(self, project):
        which = RecordingWhich("/usr/local/bin/myocd")
        runner = FakeRunner()

        res = make_resolver(runner=runner, which=which).resolve(
            ResourceKind.DEBUG_ADAPTER_EXEC, "myocd", project
        )

        assert str(res.path) == "/usr/local/bin/myocd"
        assert res.tier is Tier.OVERRIDE
        assert which.calls == ["myocd"]
        assert runner.probes() == ["/usr/local/bin/myocd"]

    def test_bare_override_kept_as_given(self, project):
        runner = FakeRunner()

        res = make_resolver(runner=runner, which=RecordingWhich(None)).resolve(
            ResourceKind.DEBUG_ADAPTER_EXEC, "myocd", project
        )

        assert str(res.path) == "myocd"
        assert runner.probes() == ["myocd"]

    def test_bare_environment_value(self, project):
        env = RecordingEnv({OPENOCD_ENV: "myocd"})
        which = RecordingWhich("/usr/local/bin/myocd")
        runner = FakeRunner()

        res = make_resolver(env=env, runner=runner, which=which).resolve(
            ResourceKind.DEBUG_ADAPTER_EXEC, None, project
        )

        assert str(res.path) == "/usr/local/bin/myocd"
        assert res.tier is Tier.ENVIRONMENT
        assert which.calls == ["myocd"]
        assert runner.probes() == ["/usr/local/bin/myocd"]

    def test_relative_override_is_taken_from_project(self, project):
        runner = FakeRunner()

        res = make_resolver(runner=runner).resolve(
            ResourceKind.DEBUG_ADAPTER_EXEC, "flash/openocd/bin/openocd", project
        )

        assert res.path == project / "flash" / "openocd" / "bin" / "openocd"
        assert runner.probes() == [str(res.path)]


class TestScriptsDir:
    def test_defaults_to_uploader_scripts(self, tmp_path):
        assert make_resolver().scripts_dir(None, tmp_path) == tmp_path / "openocd-scripts"

    def test_override(self, tmp_path):
        custom = tmp_path / "scripts"
        assert make_resolver().scripts_dir(custom, tmp_path / "uploader") == custom

    def test_relative_override_is_taken_from_project(self, project, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        scripts = make_resolver().scripts_dir("scripts", tmp_path / "uploader", project)

        assert scripts == project / "scripts"
