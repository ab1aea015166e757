"""
chip8run CLI tests — exit codes and printed output.
"""

import logging

import pytest

import chip8run


@pytest.fixture(autouse=True)
def fresh_logger():
    """main() installs handlers on the package logger; drop them afterwards."""
    yield
    for name in ("chip8_vm", "chip8_vm.machine"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)


@pytest.fixture
def rom(tmp_path):
    def write(data, name="test.ch8"):
        path = tmp_path / name
        path.write_bytes(bytes(data))
        return str(path)
    return write


def run_cli(tmp_path, *args):
    return chip8run.main([*args, "--log-dir", str(tmp_path / "logs")])


class TestParseIntArg:

    @pytest.mark.parametrize("text,value", [
        ("0x200", 0x200),
        ("$2A0", 0x2A0),
        ("#FF", 0xFF),
        ("512", 512),
    ])
    def test_formats(self, text, value):
        assert chip8run.parse_int_arg(text) == value

    def test_garbage(self):
        with pytest.raises(ValueError):
            chip8run.parse_int_arg("zz")


class TestMain:

    def test_timeout_exit_zero(self, tmp_path, rom, capsys):
        path = rom([0x12, 0x00])
        assert run_cli(tmp_path, path, "--ticks", "2") == 0
        assert "TIMEOUT" in capsys.readouterr().err

    def test_fault_exit_one(self, tmp_path, rom, capsys):
        path = rom([0x00, 0xEE])
        assert run_cli(tmp_path, path, "--ticks", "2") == 1
        assert "STACK_UNDERFLOW" in capsys.readouterr().err

    def test_ignore_policy(self, tmp_path, rom):
        path = rom([0xFF, 0xFF, 0x12, 0x02])
        assert run_cli(tmp_path, path, "--ticks", "2", "--policy", "ignore") == 0

    def test_rom_too_large(self, tmp_path, rom):
        path = rom(bytes(3585))
        assert run_cli(tmp_path, path) == 2

    def test_missing_rom(self, tmp_path):
        assert run_cli(tmp_path, str(tmp_path / "nope.ch8")) == 1

    def test_bad_breakpoint(self, tmp_path, rom):
        path = rom([0x12, 0x00])
        assert run_cli(tmp_path, path, "--break", "xyz", "--ticks", "1") == 1

    def test_breakpoint(self, tmp_path, rom, capsys):
        path = rom([0x60, 0x01, 0x12, 0x02])
        assert run_cli(tmp_path, path, "--break", "0x202") == 0
        assert "BREAK" in capsys.readouterr().err

    def test_disasm(self, tmp_path, rom, capsys):
        path = rom([0x60, 0x05, 0x00, 0xE0])
        assert run_cli(tmp_path, path, "--disasm") == 0
        out = capsys.readouterr().out
        assert "200  6005  LD V0, #05" in out
        assert "202  00E0  CLS" in out

    def test_screen_and_trace(self, tmp_path, rom, capsys):
        # LD F,V0 (digit 0); DRW V0,V0,5; JP $204
        path = rom([0xF0, 0x29, 0xD0, 0x05, 0x12, 0x04])
        assert run_cli(tmp_path, path, "--ticks", "1", "--screen", "--trace") == 0
        out = capsys.readouterr().out
        assert "$200: LD F, V0" in out
        assert "####" + "." * 60 in out

    def test_keys_option(self, tmp_path, rom, capsys):
        # LD V0,4; SKP V0; JP $204 (stuck) ; $206: JP $206
        path = rom([0x60, 0x04, 0xE0, 0x9E, 0x12, 0x04, 0x12, 0x06])
        assert run_cli(tmp_path, path, "--ticks", "1", "--keys", "0x0010") == 0
        assert "PC=$206" in capsys.readouterr().err

    def test_log_file_named_after_rom(self, tmp_path, rom):
        path = rom([0x12, 0x00], name="maze.ch8")
        assert run_cli(tmp_path, path, "--ticks", "1") == 0
        assert list((tmp_path / "logs").glob("maze_*.log"))
