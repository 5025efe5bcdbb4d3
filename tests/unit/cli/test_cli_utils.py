"""Unit tests for CLI utilities."""

import logging

import pytest

from zapdeps.cli_utils import ErrorFormatter, PathValidator, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in list(root.handlers):
            if getattr(handler, "_zapdeps_handler", False):
                root.removeHandler(handler)
        root.setLevel(level)

    def zapdeps_handlers(self):
        return [h for h in logging.getLogger().handlers if getattr(h, "_zapdeps_handler", False)]

    def test_verbose_level(self):
        setup_logging(verbose=True)

        assert logging.getLogger().level == logging.DEBUG
        assert self.zapdeps_handlers()[0].level == logging.DEBUG

    def test_quiet_level(self):
        setup_logging(verbose=False)

        assert logging.getLogger().level == logging.WARNING

    def test_handlers_not_stacked(self):
        setup_logging()
        setup_logging()

        assert len(self.zapdeps_handlers()) == 1


class TestErrorFormatter:
    """Tests for ErrorFormatter."""

    def test_print_error(self, capsys):
        ErrorFormatter.print_error("Include discovery failed!", "Foo.h: No such file or directory")

        out = capsys.readouterr().out
        assert "✗ Include discovery failed!" in out
        assert "Foo.h: No such file or directory" in out

    def test_print_success(self, capsys):
        ErrorFormatter.print_success("Done")

        assert "✓ Done" in capsys.readouterr().out

    def test_handle_keyboard_interrupt(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()

        assert exc_info.value.code == 130
        assert "interrupted" in capsys.readouterr().out

    def test_handle_file_not_found(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_file_not_found(FileNotFoundError("sketch.cpp"))

        out = capsys.readouterr().out
        assert exc_info.value.code == 1
        assert "Missing file during include discovery" in out
        assert "sketch.cpp" in out

    def test_handle_permission_error_names_path(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_permission_error(PermissionError(13, "Permission denied", "/libs/Servo"))

        out = capsys.readouterr().out
        assert exc_info.value.code == 1
        assert "Cannot read sketch or library files" in out
        assert "/libs/Servo: Permission denied" in out

    def test_print_warning_glyph(self, capsys):
        ErrorFormatter.print_warning("Careful")

        out = capsys.readouterr().out
        assert "! Careful" in out
        assert "✗" not in out

    def test_handle_unexpected_error_quiet(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_unexpected_error(RuntimeError("kaboom"))

        out = capsys.readouterr().out
        assert exc_info.value.code == 1
        assert "Internal error in zapdeps" in out
        assert "--verbose" in out
        assert "Traceback:" not in out

    def test_handle_unexpected_error_verbose(self, capsys):
        try:
            raise ValueError("bad value")
        except ValueError as e:
            with pytest.raises(SystemExit):
                ErrorFormatter.handle_unexpected_error(e, verbose=True)

        out = capsys.readouterr().out
        assert "ValueError: bad value" in out
        assert "Traceback:" in out


class TestPathValidator:
    """Tests for PathValidator."""

    def test_valid_sketch(self, tmp_path):
        sketch = tmp_path / "sketch.cpp"
        sketch.write_text("")

        PathValidator.validate_sketch_file(sketch)

    def test_sketch_is_directory(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_sketch_file(tmp_path)

        assert exc_info.value.code == 2
        assert "Sketch is not a file" in capsys.readouterr().out

    def test_missing_folders_allowed(self, tmp_path):
        PathValidator.validate_folders([tmp_path / "missing", tmp_path], "Library folder")

    def test_folder_is_file(self, tmp_path, capsys):
        path = tmp_path / "file.txt"
        path.write_text("")

        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_folders([path], "Hardware folder")

        assert exc_info.value.code == 2
        assert "Hardware folder is not a directory" in capsys.readouterr().out
