import json

import pytest
from unittest.mock import Mock, patch
from click.testing import CliRunner
from bizsift.cli.main import main
from bizsift.core.models import LookupResult
from bizsift.enrichment.orchestrator import BatchEnricher


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('bizsift.cli.commands.setup_logging'):
        yield


class TestCLICommands:
    """Test suite for CLI commands."""

    def setup_method(self):
        """Setup test environment."""
        self.runner = CliRunner()

    def _enricher(self, results):
        service = Mock()
        service.lookup.side_effect = results
        return service, BatchEnricher(service, batch_size=2, sleep=Mock())

    def test_main_command_help(self):
        """Test main command help."""
        result = self.runner.invoke(main, ['--help'])
        assert result.exit_code == 0
        assert 'Find official websites for local businesses' in result.output
        for command in ('enrich', 'retry', 'lookup', 'serve', 'config'):
            assert command in result.output

    def test_version(self):
        """Test version option output."""
        result = self.runner.invoke(main, ['--version'])
        assert result.exit_code == 0
        assert 'bizsift v0.1.0' in result.output

    def test_enrich_command(self, tmp_path):
        """Test enrich command end to end with a stubbed lookup service."""
        input_file = tmp_path / "businesses.csv"
        input_file.write_text(
            "name,type,locality,county,website\n"
            "Java House,cafe,Westlands,Nairobi,N/A\n"
            "Artcaffe,cafe,,Nairobi,https://artcaffe.co.ke\n"
            "Nowhere Diner,restaurant,,,N/A\n"
        )
        output_file = tmp_path / "enriched.json"
        service, enricher = self._enricher([
            LookupResult(url="https://javahouse.co.ke", confidence=60),
            LookupResult(),
        ])

        with patch('bizsift.cli.commands.build_enricher', return_value=enricher) as mock_build:
            result = self.runner.invoke(main, [
                'enrich', '-i', str(input_file), '-o', str(output_file), '--delay', '0',
            ])

        assert result.exit_code == 0, result.output
        assert "2 found, 1 not found, 0 error(s), 0 pending out of 3" in result.output
        assert mock_build.call_args.kwargs['service_url'] is None
        assert service.lookup.call_count == 2

        records = json.loads(output_file.read_text())
        assert [r['website_status'] for r in records] == ['found', 'found', 'not_found']
        assert records[1]['website_confidence'] == 100

    def test_enrich_batch_size_and_remote(self, tmp_path):
        """Test enrich batch size and remote."""
        input_file = tmp_path / "businesses.csv"
        input_file.write_text("name\nJava House\n")
        output_file = tmp_path / "enriched.csv"
        _, enricher = self._enricher([LookupResult()])

        with patch('bizsift.cli.commands.build_enricher', return_value=enricher) as mock_build:
            result = self.runner.invoke(main, [
                'enrich', '-i', str(input_file), '-o', str(output_file),
                '--batch-size', '5', '--remote', 'http://enricher:3001',
            ])

        assert result.exit_code == 0, result.output
        assert enricher.batch_size == 5
        assert mock_build.call_args.kwargs['service_url'] == 'http://enricher:3001'
        assert output_file.exists()

    def test_enrich_rejects_unknown_output_type(self, tmp_path):
        """Test enrich rejects unknown output type."""
        input_file = tmp_path / "businesses.csv"
        input_file.write_text("name\nJava House\n")

        result = self.runner.invoke(main, ['enrich', '-i', str(input_file), '-o', str(tmp_path / "out.txt")])

        assert result.exit_code == 1
        assert "must be CSV or JSON" in result.output

    def test_enrich_declined_overwrite(self, tmp_path):
        """Test enrich declined overwrite."""
        input_file = tmp_path / "businesses.csv"
        input_file.write_text("name\nJava House\n")
        output_file = tmp_path / "enriched.csv"
        output_file.write_text("keep me")

        with patch('bizsift.cli.commands.build_enricher') as mock_build:
            result = self.runner.invoke(main, ['enrich', '-i', str(input_file), '-o', str(output_file)],
                                        input='n\n')

        assert result.exit_code == 0
        assert "Operation cancelled by user." in result.output
        assert output_file.read_text() == "keep me"
        mock_build.assert_not_called()

    def test_enrich_empty_input(self, tmp_path):
        """Test enrich empty input."""
        input_file = tmp_path / "businesses.csv"
        input_file.write_text("name,locality\n")

        with patch('bizsift.cli.commands.build_enricher') as mock_build:
            result = self.runner.invoke(main, ['enrich', '-i', str(input_file), '-o', str(tmp_path / "o.csv")])

        assert result.exit_code == 0
        assert "No businesses to enrich." in result.output
        mock_build.assert_not_called()

    def test_retry_command(self, tmp_path):
        """Test retry command."""
        previous = tmp_path / "previous.json"
        previous.write_text(json.dumps([
            {"name": "Java House", "website_status": "found",
             "website_url": "https://javahouse.co.ke", "website_confidence": 60},
            {"name": "Broken Cafe", "website_status": "error", "error_message": "timeout"},
        ]))
        output_file = tmp_path / "merged.json"
        service, enricher = self._enricher([LookupResult(url="https://brokencafe.co.ke", confidence=60)])

        with patch('bizsift.cli.commands.build_enricher', return_value=enricher):
            result = self.runner.invoke(main, ['retry', '-i', str(previous), '-o', str(output_file)])

        assert result.exit_code == 0, result.output
        assert "Retrying 1 businesses (errors: 1, not found: 0, low confidence: 0)" in result.output
        service.lookup.assert_called_once_with("Broken Cafe", "Kenya", None)

        records = json.loads(output_file.read_text())
        assert [r['website_url'] for r in records] == ["https://javahouse.co.ke", "https://brokencafe.co.ke"]

    def test_retry_nothing_to_do(self, tmp_path):
        """Test retry nothing to do."""
        previous = tmp_path / "previous.json"
        previous.write_text(json.dumps([
            {"name": "Java House", "website_status": "found",
             "website_url": "https://javahouse.co.ke", "website_confidence": 60},
        ]))

        with patch('bizsift.cli.commands.build_enricher') as mock_build:
            result = self.runner.invoke(main, ['retry', '-i', str(previous), '-o', str(tmp_path / "m.json")])

        assert result.exit_code == 0
        assert "No businesses need retry. All enrichments were successful!" in result.output
        mock_build.assert_not_called()

    @patch('bizsift.cli.commands.build_handler')
    def test_lookup_found(self, mock_build):
        """Test lookup found."""
        mock_build.return_value.lookup.return_value = LookupResult(url="https://javahouse.co.ke", confidence=60)

        result = self.runner.invoke(main, ['lookup', 'Java House', 'Nairobi', '--type', 'cafe'])

        assert result.exit_code == 0
        assert "https://javahouse.co.ke (confidence: 60)" in result.output
        mock_build.return_value.lookup.assert_called_once_with('Java House', 'Nairobi', 'cafe')

    @patch('bizsift.cli.commands.build_handler')
    def test_lookup_not_found(self, mock_build):
        """Test lookup not found."""
        mock_build.return_value.lookup.return_value = LookupResult()

        result = self.runner.invoke(main, ['lookup', 'Nowhere Diner', 'Kenya'])

        assert result.exit_code == 0
        assert "Not found" in result.output

    @patch('bizsift.cli.commands.build_handler')
    def test_lookup_failed(self, mock_build):
        """Test lookup failed."""
        mock_build.return_value.lookup.return_value = LookupResult(error="All 3 search queries failed")

        result = self.runner.invoke(main, ['lookup', 'Java House', 'Nairobi'])

        assert result.exit_code == 1
        assert "All 3 search queries failed" in result.output

    @patch('bizsift.cli.commands.create_app')
    @patch('bizsift.cli.commands.build_handler')
    def test_serve(self, mock_build, mock_create_app):
        """Test serve command wiring."""
        result = self.runner.invoke(main, ['serve', '--port', '8080'])

        assert result.exit_code == 0, result.output
        mock_create_app.assert_called_once_with(mock_build.return_value)
        run_kwargs = mock_create_app.return_value.run.call_args.kwargs
        assert run_kwargs['port'] == 8080
        assert run_kwargs['threaded'] is True

    def test_config_commands(self, tmp_path):
        """Test config commands."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("enrichment:\n  batch_size: 7\n")

        show = self.runner.invoke(main, ['--config', str(config_file), 'config', 'show'])
        assert show.exit_code == 0
        assert "batch_size: 7" in show.output

        valid = self.runner.invoke(main, ['--config', str(config_file), 'config', 'validate'])
        assert valid.exit_code == 0
        assert "Configuration is valid" in valid.output

        example = self.runner.invoke(main, ['config', 'example'])
        assert example.exit_code == 0
        assert "inter_batch_delay" in example.output

    def test_invalid_config(self, tmp_path):
        """Test invalid config."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("enrichment:\n  batch_size: 0\n")

        result = self.runner.invoke(main, ['--config', str(config_file), 'config', 'validate'])
        assert result.exit_code == 1
        assert "Batch size must be positive" in result.output

        result = self.runner.invoke(main, ['--config', str(config_file), 'lookup', 'A', 'B'])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
