"""
CLI and configuration tests.
"""
import json
import subprocess
import sys

import pytest
import yaml
from click.testing import CliRunner

from iacdemo.cli import cli
from iacdemo.config import StackConfig, load_config
from iacdemo.errors import ConfigError


@pytest.fixture
def runner(tmp_path, monkeypatch):
    # keep any iacdemo.yaml in the developer's checkout out of the tests
    monkeypatch.chdir(tmp_path)
    return CliRunner()


def test_module_execution():
    """Test that 'python -m iacdemo' works."""
    result = subprocess.run(
        [sys.executable, "-m", "iacdemo", "--help"],
        capture_output=True,
        text=True
    )
    assert result.returncode == 0
    assert "iacdemo" in result.stdout


class TestSynthCommand:
    def test_json_template_written(self, runner, tmp_path):
        out = tmp_path / "template.json"
        result = runner.invoke(cli, ["synth", "--output", str(out)])
        assert result.exit_code == 0, result.output

        template = json.loads(out.read_text(encoding="utf-8"))
        assert template["Resources"]["BlogTable"]["Type"] == "AWS::DynamoDB::Table"
        assert list(template["Outputs"]) == ["apiUrl"]

    def test_yaml_template_written(self, runner, tmp_path):
        out = tmp_path / "template.yaml"
        result = runner.invoke(cli, ["synth", "--format", "yaml", "-o", str(out)])
        assert result.exit_code == 0, result.output

        template = yaml.safe_load(out.read_text(encoding="utf-8"))
        env = template["Resources"]["IacDemoFunction"]["Properties"]["Environment"]
        assert env["Variables"]["BLOG_TABLE_NAME"] == {"Ref": "BlogTable"}

    def test_markdown_summary(self, runner, tmp_path):
        out = tmp_path / "stack.md"
        result = runner.invoke(cli, ["synth", "--format", "markdown", "-o", str(out)])
        assert result.exit_code == 0, result.output

        content = out.read_bytes()
        assert b"\r\n" not in content
        text = content.decode("utf-8")
        assert "# Stack Summary: IacDemoStack" in text
        assert "```mermaid" in text
        assert "IacDemoFunction -->|ref| BlogTable" in text
        assert "`AWS::DynamoDB::Table`" in text

    def test_stdout_output(self, runner):
        result = runner.invoke(cli, ["synth"])
        assert result.exit_code == 0
        assert '"IacDemoRestApi"' in result.output

    def test_config_file_applied(self, runner, tmp_path):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("stack_name: Staging\ntable_name: stagingBlogs\nstage_name: staging\n")
        out = tmp_path / "template.json"
        result = runner.invoke(cli, ["synth", "-c", str(cfg), "-o", str(out)])
        assert result.exit_code == 0, result.output

        resources = json.loads(out.read_text())["Resources"]
        assert resources["BlogTable"]["Properties"]["TableName"] == "stagingBlogs"
        assert "IacDemoRestApiDeploymentStagestaging" in resources

    def test_default_config_file_picked_up(self, runner, tmp_path):
        (tmp_path / "iacdemo.yaml").write_text("timeout: 30\n")
        out = tmp_path / "template.json"
        result = runner.invoke(cli, ["synth", "-o", str(out)])
        assert result.exit_code == 0, result.output
        props = json.loads(out.read_text())["Resources"]["IacDemoFunction"]["Properties"]
        assert props["Timeout"] == 30

    def test_invalid_config_exits_2(self, runner, tmp_path):
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("- not\n- a mapping\n")
        result = runner.invoke(cli, ["synth", "-c", str(cfg)])
        assert result.exit_code == 2

    def test_config_directory_exits_2(self, runner, tmp_path):
        result = runner.invoke(cli, ["synth", "-c", str(tmp_path)])
        assert result.exit_code == 2
        assert "Traceback" not in result.output


class TestListCommand:
    def test_lists_resources_in_order(self, runner):
        result = runner.invoke(cli, ["list", "--no-color"])
        assert result.exit_code == 0, result.output
        assert "BlogTable\tAWS::DynamoDB::Table" in result.output
        assert "IacDemoFunction\tAWS::Lambda::Function" in result.output


class TestConfig:
    def test_missing_default_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == StackConfig()

    def test_missing_explicit_file_is_error(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file_gives_defaults(self, tmp_path):
        cfg = tmp_path / "empty.yaml"
        cfg.write_text("")
        assert load_config(str(cfg)) == StackConfig()

    def test_values_loaded(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_text("memory_size: 256\ndescription: Blog API\n")
        config = load_config(str(cfg))
        assert config.memory_size == 256
        assert config.description == "Blog API"
        assert config.stack_name == "IacDemoStack"

    def test_wrong_type_rejected(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_text("timeout: ten\n")
        with pytest.raises(ConfigError):
            load_config(str(cfg))

    def test_bool_not_accepted_as_int(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_text("memory_size: true\n")
        with pytest.raises(ConfigError):
            load_config(str(cfg))

    def test_invalid_yaml(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_text("stack_name: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(cfg))

    def test_unknown_key_ignored(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_text("stack_name: X\nregion: eu-west-1\n")
        assert load_config(str(cfg)).stack_name == "X"

    def test_directory_path_is_error(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path))

    def test_invalid_utf8_is_error(self, tmp_path):
        cfg = tmp_path / "c.yaml"
        cfg.write_bytes(b"stack_name: \xff\xfe\n")
        with pytest.raises(ConfigError):
            load_config(str(cfg))
