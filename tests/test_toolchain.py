"""
Tests for the compiler and package-manager collaborators
"""
import json
import subprocess
from unittest.mock import AsyncMock, patch

import pytest

from projectgen.core.config import ToolchainConfig
from projectgen.core.errors import InstallError
from projectgen.core.models import Dependencies
from projectgen.toolchain.commands import CommandResult, run_command
from projectgen.toolchain.compiler import NO_COMPILATION_NEEDED, ProjectCompiler
from projectgen.toolchain.package_manager import PackageManager, merge_manifest_dependencies


def _write_manifest(project_dir, **manifest):
    (project_dir / "package.json").write_text(json.dumps(manifest))


def _result(returncode=0, stdout="", stderr="", command=("npm",)):
    return CommandResult(list(command), returncode, stdout, stderr)


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_success(self, tmp_path):
        completed = subprocess.CompletedProcess(["npm", "install"], 0, stdout="added 1 package", stderr="")
        with patch("projectgen.toolchain.commands.subprocess.run", return_value=completed) as run:
            result = await run_command(["npm", "install"], tmp_path)
        assert result.ok
        assert result.stdout == "added 1 package"
        assert run.call_args.kwargs["cwd"] == str(tmp_path)

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        with patch("projectgen.toolchain.commands.subprocess.run", side_effect=FileNotFoundError("npm")):
            result = await run_command(["npm", "install"], tmp_path)
        assert result.returncode == 127
        assert "Command not found: npm" in result.failure_message()

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path):
        with patch("projectgen.toolchain.commands.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(["npm"], 5)):
            result = await run_command(["npm", "install"], tmp_path, timeout=5)
        assert result.returncode == 124
        assert not result.ok

    def test_failure_message_preference(self):
        assert _result(1, stdout="out", stderr="err").failure_message() == "err"
        assert _result(1, stdout="out").failure_message() == "out"
        assert "exit code 2" in _result(2, command=["npx", "tsc"]).failure_message()


class TestCompiler:
    @pytest.mark.asyncio
    async def test_build_script_runs_build(self, tmp_path):
        _write_manifest(tmp_path, scripts={"build": "tsc"}, dependencies={"react": "^18"})
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock(return_value=_result(0, "built"))) as run:
            result = await ProjectCompiler().compile(tmp_path)
        assert result.success
        assert run.call_args.args[0] == ["npm", "run", "build"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("manifest", [
        {"dependencies": {"react": "^18"}, "devDependencies": {"typescript": "^5"}},
        {"dependencies": {"express": "^4"}},
    ])
    async def test_javascript_projects_skip_compilation(self, tmp_path, manifest):
        _write_manifest(tmp_path, **manifest)
        (tmp_path / "tsconfig.json").write_text("{}")
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock()) as run:
            result = await ProjectCompiler().compile(tmp_path)
        assert result.success
        assert result.output == NO_COMPILATION_NEEDED
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_tsconfig_is_javascript(self, tmp_path):
        _write_manifest(tmp_path, devDependencies={"typescript": "^5"})
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock()) as run:
            result = await ProjectCompiler().compile(tmp_path)
        assert result.success
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_typecheck_failure_reports_stderr(self, tmp_path):
        _write_manifest(tmp_path, devDependencies={"typescript": "^5"})
        (tmp_path / "tsconfig.json").write_text("{}")
        failure = _result(2, stdout="", stderr="src/index.ts(1,7): error TS2322")
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock(return_value=failure)) as run:
            result = await ProjectCompiler().compile(tmp_path)
        assert not result.success
        assert result.errors == ["src/index.ts(1,7): error TS2322"]
        assert run.call_args.args[0] == ["npx", "tsc", "--noEmit"]

    @pytest.mark.asyncio
    async def test_no_manifest_with_tsconfig_typechecks(self, tmp_path):
        (tmp_path / "tsconfig.json").write_text("{}")
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock(return_value=_result(0))) as run:
            result = await ProjectCompiler().compile(tmp_path)
        assert result.success
        run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_commands(self, tmp_path):
        _write_manifest(tmp_path, scripts={"build": "vite build"})
        toolchain = ToolchainConfig(build_command=["pnpm", "build"], command_timeout=30)
        with patch("projectgen.toolchain.compiler.run_command", AsyncMock(return_value=_result(0))) as run:
            await ProjectCompiler(toolchain).compile(tmp_path)
        assert run.call_args.args == (["pnpm", "build"], tmp_path, 30)


class TestPackageManager:
    def test_merge_keeps_existing_entries(self):
        manifest = {"name": "app", "dependencies": {"express": "^4.0.0", "lodash": "^4"}}
        merged = merge_manifest_dependencies(manifest, Dependencies({"express": "^5.0.0"}, {"jest": "^29"}))
        assert merged["dependencies"] == {"express": "^5.0.0", "lodash": "^4"}
        assert merged["devDependencies"] == {"jest": "^29"}
        assert manifest["dependencies"]["express"] == "^4.0.0"

    @pytest.mark.asyncio
    async def test_install_creates_default_manifest(self, tmp_path):
        project = tmp_path / "my-app"
        project.mkdir()
        with patch("projectgen.toolchain.package_manager.run_command",
                   AsyncMock(return_value=_result(0))) as run:
            await PackageManager().install(project, Dependencies({"commander": "^12"}))

        manifest = json.loads((project / "package.json").read_text())
        assert manifest["name"] == "my-app"
        assert manifest["version"] == "1.0.0"
        assert manifest["dependencies"] == {"commander": "^12"}
        assert run.call_args.args[0] == ["npm", "install"]

    @pytest.mark.asyncio
    async def test_install_merges_into_existing_manifest(self, existing_project):
        with patch("projectgen.toolchain.package_manager.run_command", AsyncMock(return_value=_result(0))):
            await PackageManager().install(existing_project, Dependencies({"zod": "^3"}, {}))
        manifest = json.loads((existing_project / "package.json").read_text())
        assert manifest["name"] == "existing"
        assert manifest["dependencies"] == {"express": "^4.18.0", "zod": "^3"}
        assert manifest["devDependencies"] == {"typescript": "^5.0.0"}

    @pytest.mark.asyncio
    async def test_install_failure_raises(self, tmp_path):
        failure = _result(1, stdout="partial output", stderr="npm ERR! 404 Not Found")
        with patch("projectgen.toolchain.package_manager.run_command", AsyncMock(return_value=failure)):
            with pytest.raises(InstallError) as exc_info:
                await PackageManager().install(tmp_path, Dependencies({"does-not-exist": "1.0.0"}))
        assert "npm ERR! 404" in str(exc_info.value)
        assert exc_info.value.output == "partial output"

    @pytest.mark.asyncio
    async def test_outdated_exit_code_one_is_success(self, tmp_path):
        outdated = {"lodash": {"current": "4.17.0", "wanted": "4.17.21", "latest": "4.17.21"}}
        with patch("projectgen.toolchain.package_manager.run_command",
                   AsyncMock(return_value=_result(1, stdout=json.dumps(outdated)))):
            assert await PackageManager().check_outdated(tmp_path) == outdated

    @pytest.mark.asyncio
    async def test_outdated_real_failure(self, tmp_path):
        with patch("projectgen.toolchain.package_manager.run_command",
                   AsyncMock(return_value=_result(127, stderr="Command not found: npm"))):
            assert await PackageManager().check_outdated(tmp_path) == {}

    @pytest.mark.asyncio
    async def test_installed_versions(self, tmp_path):
        listing = {"name": "app", "dependencies": {"express": {"version": "4.18.2"}}}
        with patch("projectgen.toolchain.package_manager.run_command",
                   AsyncMock(return_value=_result(0, stdout=json.dumps(listing)))) as run:
            assert await PackageManager().installed_versions(tmp_path) == {"express": {"version": "4.18.2"}}
        assert run.call_args.args[0] == ["npm", "list", "--json"]
