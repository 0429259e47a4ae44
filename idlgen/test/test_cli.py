"""Tests for the idlgen command line."""

import os

import pytest
from idlgen.__main__ import main


IDL = """\
module TestMod {
    struct S { long x; };
    enum E { A, B };
};
"""


@pytest.fixture
def idl_file(tmp_path):
    path = tmp_path / "test.idl"
    path.write_text(IDL)
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "idlgen.yaml"
    path.write_text("package: fromconfig\nformatters: []\n")
    return path


class TestMain:
    def test_generates_files(self, tmp_path, idl_file, config_file, capsys):
        out = tmp_path / "gen"
        rc = main([str(idl_file), "--outdir", str(out), "--config", str(config_file)])
        assert rc == 0
        assert sorted(os.listdir(out / "testmod")) == ["e.go", "s.go"]
        printed = capsys.readouterr().out
        assert f"  wrote {out / 'testmod' / 's.go'}" in printed
        assert "Generated 2 files" in printed

    def test_config_package_used(self, tmp_path, idl_file, config_file):
        out = tmp_path / "gen"
        main([str(idl_file), "--outdir", str(out), "--config", str(config_file)])
        assert "package fromconfig" in (out / "testmod" / "s.go").read_text()

    def test_flags_override_config(self, tmp_path, idl_file, config_file):
        out = tmp_path / "gen"
        main([str(idl_file), "--outdir", str(out), "--config", str(config_file),
              "--package", "fromflag", "--include", "example.com/a,example.com/b"])
        code = (out / "testmod" / "s.go").read_text()
        assert "package fromflag" in code
        assert '"example.com/a"' in code
        assert '"example.com/b"' in code

    def test_outdir_from_config(self, tmp_path, idl_file):
        out = tmp_path / "cfg-out"
        cfg = tmp_path / "c.yaml"
        cfg.write_text(f"outdir: {out}\nformatters: []\n")
        assert main([str(idl_file), "--config", str(cfg)]) == 0
        assert (out / "testmod" / "s.go").exists()

    def test_include_dirs_flag(self, tmp_path, config_file):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "common.idl").write_text("struct Common { long id; };")
        src = tmp_path / "main.idl"
        src.write_text("#include <common.idl>\n")
        out = tmp_path / "gen"
        rc = main([str(src), "--outdir", str(out), "--config", str(config_file),
                   "-I", str(inc)])
        assert rc == 0
        assert (out / "common.go").exists()

    def test_parse_error_exit_code(self, tmp_path, capsys):
        src = tmp_path / "bad.idl"
        src.write_text("struct S { long x }")
        rc = main([str(src), "--outdir", str(tmp_path / "gen")])
        assert rc == 1
        err = capsys.readouterr().err
        assert err.startswith(f"error: {src}:1:")

    def test_missing_input_file(self, tmp_path, capsys):
        rc = main([str(tmp_path / "nope.idl"), "--outdir", str(tmp_path)])
        assert rc == 1
        assert "error:" in capsys.readouterr().err

    def test_outdir_required(self, idl_file):
        with pytest.raises(SystemExit) as exc:
            main([str(idl_file)])
        assert exc.value.code == 2
