import json

import pytest

from salesledger.run import main


def test_report_command(data_dir, capsys):
    code = main(["--data-dir", str(data_dir), "report", "--start", "2024-03-01", "--end", "2024-03-31"])
    out = capsys.readouterr().out

    assert code == 0
    assert "15/03/2024" in out
    assert "₹7,500" in out


def test_report_command_empty_window(data_dir, capsys):
    code = main(["--data-dir", str(data_dir), "report", "--start", "2023-01-01", "--end", "2023-01-31"])

    assert code == 0
    assert "取引データがありません" in capsys.readouterr().out


def test_export_command(data_dir, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = main([
        "--data-dir", str(data_dir),
        "export", "--start", "2024-03-01", "--end", "2024-03-31", "--output-dir", str(out_dir),
    ])

    assert code == 0
    expected = out_dir / "Daily_Sales_Report_2024-03-01_to_2024-03-31.xlsx"
    assert expected.exists()
    assert str(expected) in capsys.readouterr().out


def test_export_command_failure(data_dir, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    code = main([
        "--data-dir", str(data_dir),
        "export", "--start", "2024-03-01", "--end", "2024-03-31", "--output-dir", str(blocker),
    ])
    assert code == 1


def test_unknown_channel_is_rejected(data_dir):
    code = main(["--data-dir", str(data_dir), "report", "--channel", "wholesale"])
    assert code == 2


def test_missing_data_dir(tmp_path):
    assert main(["--data-dir", str(tmp_path / "nowhere"), "report"]) == 2


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out


@pytest.mark.parametrize("command", ["report", "export"])
def test_filter_arguments(command):
    from salesledger.config import get_config
    from salesledger.run import build_parser

    args = build_parser(get_config()).parse_args([command, "--salesperson", "sp1", "--channel", "pos"])
    assert args.salesperson == "sp1"
    assert args.channel == "pos"


def test_report_survives_overflowing_amount(data_dir, capsys):
    customers = json.loads((data_dir / "customers.json").read_text(encoding="utf-8"))
    customers[1]["followUps"][0]["salesAmount"] = "1e400"
    (data_dir / "customers.json").write_text(json.dumps(customers), encoding="utf-8")

    code = main(["--data-dir", str(data_dir), "report", "--start", "2024-03-01", "--end", "2024-03-31"])
    out = capsys.readouterr().out

    assert code == 0
    assert "₹5,000" in out
