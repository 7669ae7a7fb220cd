"""
WebShield CLI Tests
"""

from typer.testing import CliRunner

from webshield import __version__
from webshield.cli import app


runner = CliRunner()


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_command(self):
        """Test version command outputs version."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_help_command(self):
        """Test help output."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "scan" in result.stdout
        assert "plans" in result.stdout

    def test_plans_command(self):
        result = runner.invoke(app, ["plans"])
        assert result.exit_code == 0
        for name in ("Base", "Premium", "Pro"):
            assert name in result.stdout
        assert "unlimited" in result.stdout

    def test_questions_command(self):
        result = runner.invoke(app, ["questions"])
        assert result.exit_code == 0
        assert "supply chain" in result.stdout.lower()
        assert "In planning" in result.stdout


class TestScanCommand:
    """Test one-off scans with the simulated probe."""

    def test_scan_prints_score(self):
        result = runner.invoke(app, ["scan", "example.com"])
        assert result.exit_code == 0
        assert "https://example.com" in result.stdout
        assert "/100" in result.stdout

    def test_scan_rejects_internal_host(self):
        result = runner.invoke(app, ["scan", "http://127.0.0.1"])
        assert result.exit_code == 1
        assert "internal hosts" in result.stdout
