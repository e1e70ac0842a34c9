from richat_geyser.config_check import main


def test_valid_config(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text('{"logs": {"level": "info"}, "channel": {"encoder": "raw"}}')
    assert main(["--config", str(path)]) == 0
    assert capsys.readouterr().out == "Config is OK!\n"


def test_short_option(tmp_path, capsys):
    path = tmp_path / "c.json"
    path.write_text("{}")
    assert main(["-c", str(path)]) == 0
    assert "Config is OK!" in capsys.readouterr().out


def test_invalid_config(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text('{"channel": {"encoder": "zstd"}}')
    assert main(["--config", str(path)]) == 1
    captured = capsys.readouterr()
    assert "failed to decode encoder: zstd" in captured.err
    assert captured.out == ""


def test_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "nope.json")]) == 1
    assert "Error:" in capsys.readouterr().err