"""
Unit tests for CompilerProbe.

The compiler subprocess is mocked; the real toolchain is exercised by the
integration tests.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from zapdeps.build.compiler_probe import (
    DEFAULT_DEPENDENCY_FLAGS,
    CompilerConfig,
    CompilerProbe,
    ProbeResult,
)
from zapdeps.build.dependency_parser import DependencyParseError
from zapdeps.build.diagnostics import ClangDiagnosticParser, MissingHeader
from zapdeps.build.errors import ProbeError


def make_process(stdout="", stderr="", returncode=0):
    """Create a mock Popen object."""
    process = MagicMock()
    process.communicate.return_value = (stdout, stderr)
    process.returncode = returncode
    process.pid = 4242
    return process


class TestCompilerProbe:
    """Test suite for CompilerProbe."""

    @pytest.fixture
    def sketch(self, tmp_path):
        """Create a sketch translation unit."""
        sketch_dir = tmp_path / "sketch"
        sketch_dir.mkdir()
        sketch = sketch_dir / "Blink.ino.cpp"
        sketch.write_text("#include <Arduino.h>\nvoid setup() {}\nvoid loop() {}\n")
        return sketch.resolve()

    @pytest.fixture
    def core(self, tmp_path):
        """Create a platform core folder."""
        core = tmp_path / "cores" / "arduino"
        core.mkdir(parents=True)
        (core / "Arduino.h").write_text("#pragma once\n")
        return core.resolve()

    @pytest.fixture
    def config(self, core):
        return CompilerConfig(
            compiler_path=Path("/usr/bin/avr-g++"),
            flags=["-mmcu=atmega32u4", "-DARDUINO=10600"],
            platform_include_folders=[core],
        )

    @pytest.fixture
    def probe(self, config):
        return CompilerProbe(config)

    def test_default_dependency_flags(self, config):
        """Test dependency output with missing headers tolerated by default."""
        assert config.dependency_flags == DEFAULT_DEPENDENCY_FLAGS
        assert config.dependency_flags == ["-M", "-MG"]

    def test_build_command_order(self, probe, core, sketch, tmp_path):
        """Test flags, platform folders, library folders, then dependency flags."""
        lib = tmp_path / "libraries" / "Bridge" / "src"

        cmd = probe.build_command([lib], sketch)

        assert cmd == [
            "/usr/bin/avr-g++",
            "-mmcu=atmega32u4",
            "-DARDUINO=10600",
            f"-I{core}",
            f"-I{lib}",
            "-M",
            "-MG",
            str(sketch),
        ]

    def test_build_command_response_file(self, config, core, sketch, tmp_path):
        """Test include folders written to a response file."""
        config.response_file_dir = tmp_path / "rsp"
        lib = tmp_path / "libraries" / "Servo"

        cmd = CompilerProbe(config).build_command([lib], sketch)

        response_file = tmp_path / "rsp" / "includes.rsp"
        assert f"@{response_file}" in cmd
        assert not any(arg.startswith("-I") for arg in cmd)
        assert response_file.read_text().splitlines() == [f"-I{core}", f"-I{lib}"]

    def test_probe_complete(self, probe, core, sketch):
        """Test a probe where the compiler found every header."""
        stdout = f"Blink.ino.o: {sketch} \\\n {core / 'Arduino.h'}\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout=stdout)
            result = probe.probe([], sketch)

        assert isinstance(result, ProbeResult)
        assert result.complete
        assert result.missing_headers == []
        assert result.dependency_paths == [core / "Arduino.h"]
        assert result.returncode == 0

        _, kwargs = mock_popen.call_args
        assert kwargs["cwd"] == str(sketch.parent)

    def test_probe_missing_header_from_dependency_output(self, probe, core, sketch):
        """Test -MG lists a missing header by its bare name."""
        stdout = f"Blink.ino.o: {sketch} {core / 'Arduino.h'} Bridge.h\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout=stdout)
            result = probe.probe([], sketch)

        assert not result.complete
        assert result.missing_headers == [MissingHeader(name="Bridge.h")]
        assert result.dependency_paths == [core / "Arduino.h"]

    def test_probe_missing_header_from_diagnostics(self, probe, sketch):
        """Test a failed run whose diagnostics name the missing header."""
        stderr = f"{sketch}:1:10: fatal error: Servo.h: No such file or directory\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stderr=stderr, returncode=1)
            result = probe.probe([], sketch)

        assert result.missing_headers == [MissingHeader(name="Servo.h", including_file=sketch)]
        assert result.returncode == 1

    def test_probe_merges_diagnostics_and_dependency_output(self, probe, sketch):
        """Test a header reported both ways is only listed once."""
        stderr = f"{sketch}:1:10: fatal error: Servo.h: No such file or directory\n"
        stdout = f"Blink.ino.o: {sketch} Servo.h Wire.h\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout=stdout, stderr=stderr, returncode=1)
            result = probe.probe([], sketch)

        assert [header.name for header in result.missing_headers] == ["Servo.h", "Wire.h"]

    def test_probe_failure_without_missing_header(self, probe, sketch):
        """Test an unrelated compiler failure raises ProbeError."""
        stderr = "avr-g++: error: unrecognized command line option '-mfoo'\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stderr=stderr, returncode=1)
            with pytest.raises(ProbeError, match="exit code 1") as exc_info:
                probe.probe([], sketch)

        assert exc_info.value.returncode == 1
        assert "unrecognized command line option" in str(exc_info.value)
        assert exc_info.value.command[0] == "/usr/bin/avr-g++"

    def test_probe_malformed_output_on_success(self, probe, sketch):
        """Test malformed dependency output from a successful run is an error."""
        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout="garbage without rule\n")
            with pytest.raises(DependencyParseError):
                probe.probe([], sketch)

    def test_probe_truncated_output_on_failure(self, probe, sketch):
        """Test truncated output from a failed run is ignored."""
        stderr = f"{sketch}:1:10: fatal error: Servo.h: No such file or directory\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(
                stdout="Blink.ino.o: \\", stderr=stderr, returncode=1
            )
            result = probe.probe([], sketch)

        assert [header.name for header in result.missing_headers] == ["Servo.h"]
        assert result.dependency_paths == []

    def test_probe_clang_dialect(self, config, sketch):
        """Test a probe configured with the clang diagnostic parser."""
        probe = CompilerProbe(config, ClangDiagnosticParser())
        stderr = f"{sketch}:1:10: fatal error: 'Servo.h' file not found\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stderr=stderr, returncode=1)
            result = probe.probe([], sketch)

        assert [header.name for header in result.missing_headers] == ["Servo.h"]

    def test_probe_missing_sketch(self, probe, tmp_path):
        """Test probing a sketch that does not exist."""
        with pytest.raises(ProbeError, match="Sketch file not found"):
            probe.probe([], tmp_path / "missing.cpp")

    def test_probe_compiler_not_found(self, probe, sketch):
        """Test a compiler that cannot be started."""
        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.side_effect = FileNotFoundError("No such file or directory: avr-g++")
            with pytest.raises(ProbeError, match="Failed to start compiler"):
                probe.probe([], sketch)

    def test_probe_timeout_kills_process_tree(self, config, sketch):
        """Test a hung compiler is killed and reported."""
        config.timeout = 5
        probe = CompilerProbe(config)
        process = make_process()
        process.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="avr-g++", timeout=5),
            ("", ""),
        ]

        with patch("zapdeps.build.compiler_probe.subprocess.Popen", return_value=process), \
                patch("zapdeps.build.compiler_probe.kill_process_tree") as mock_kill:
            with pytest.raises(ProbeError, match="timed out"):
                probe.probe([], sketch)

        mock_kill.assert_called_once_with(4242)
        assert process.communicate.call_count == 2

    def test_probe_interrupt_kills_process_tree(self, probe, sketch):
        """Test Ctrl-C during a probe cleans up the compiler."""
        process = make_process()
        process.communicate.side_effect = [KeyboardInterrupt(), ("", "")]

        with patch("zapdeps.build.compiler_probe.subprocess.Popen", return_value=process), \
                patch("zapdeps.build.compiler_probe.kill_process_tree") as mock_kill:
            with pytest.raises(KeyboardInterrupt):
                probe.probe([], sketch)

        mock_kill.assert_called_once_with(4242)

    def test_relative_dependency_resolved_against_sketch(self, probe, sketch):
        """Test relative prerequisites are made absolute."""
        (sketch.parent / "config.h").write_text("#define X 1\n")
        stdout = "Blink.ino.o: Blink.ino.cpp config.h\n"

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout=stdout)
            result = probe.probe([], sketch)

        assert result.dependency_paths == [sketch.parent / "config.h"]
        assert result.complete

    def test_relative_include_folders_are_anchored(self, config, sketch, tmp_path, monkeypatch):
        """Test relative folders are made absolute before the compiler runs in the sketch folder."""
        monkeypatch.chdir(tmp_path)
        config.platform_include_folders = [Path("cores/arduino")]

        cmd = CompilerProbe(config).build_command([Path("libraries/Bridge")], sketch)

        assert f"-I{tmp_path / 'cores' / 'arduino'}" in cmd
        assert f"-I{tmp_path / 'libraries' / 'Bridge'}" in cmd
        assert not any(arg.startswith("-Icores") or arg.startswith("-Ilibraries") for arg in cmd)

    def test_relative_compiler_path_is_anchored(self, config, sketch, tmp_path, monkeypatch):
        """Test a path-like compiler is anchored, a bare name is left for PATH lookup."""
        monkeypatch.chdir(tmp_path)

        config.compiler_path = Path("tools/avr-g++")
        assert CompilerProbe(config).build_command([], sketch)[0] == str(tmp_path / "tools" / "avr-g++")

        config.compiler_path = Path("avr-g++")
        assert CompilerProbe(config).build_command([], sketch)[0] == "avr-g++"

    def test_probe_passes_anchored_folders_to_compiler(self, config, sketch, tmp_path, monkeypatch):
        """Test the spawned command uses absolute folders and the sketch folder as cwd."""
        monkeypatch.chdir(tmp_path)
        config.platform_include_folders = [Path("cores/arduino")]

        with patch("zapdeps.build.compiler_probe.subprocess.Popen") as mock_popen:
            mock_popen.return_value = make_process(stdout="Blink.ino.o: Blink.ino.cpp\n")
            CompilerProbe(config).probe([], sketch)

        args, kwargs = mock_popen.call_args
        assert f"-I{tmp_path / 'cores' / 'arduino'}" in args[0]
        assert Path(kwargs["cwd"]) == sketch.parent
