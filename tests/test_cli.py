from lumina.model import Coupon, Product


def test_seed_demo_runs_once(app):
    runner = app.test_cli_runner()
    assert "Demo catalog created" in runner.invoke(args=["seed-demo"]).output
    assert Product.query.count() == 3
    assert "skipping" in runner.invoke(args=["seed-demo"]).output


def test_create_coupon(app):
    result = app.test_cli_runner().invoke(args=[
        "create-coupon", "--code", "eid25", "--type", "fixed", "--value", "25",
        "--expires-at", "2030-06-01T00:00:00Z",
    ])
    assert result.exit_code == 0, result.output
    c = Coupon.query.filter_by(code="EID25").one()
    assert c.apply_to == "all"
    assert c.expires_at.year == 2030


def test_create_coupon_reports_validation_errors(app):
    result = app.test_cli_runner().invoke(args=["create-coupon", "--code", "CAT", "--value", "5", "--apply-to", "category"])
    assert result.exit_code != 0
    assert "Category is required" in result.output


def test_export_sessions(app, tmp_path):
    out = tmp_path / "sessions.xlsx"
    result = app.test_cli_runner().invoke(args=["export-sessions", "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert out.exists()
