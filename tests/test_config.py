"""Tests for TOML configuration loading."""

import pytest

from mclf.core.models import LoadOptions
from shared.config import LoaderConfig


def write(tmp_path, text):
    path = tmp_path / 'config.toml'
    path.write_text(text, encoding='utf-8')
    return path


class TestLoaderConfig:

    def test_defaults(self):
        config = LoaderConfig()
        assert config.mclf.max_file_size == 16 * 1024 * 1024
        assert config.mclf.header_overlay is True
        assert config.mclf.text_header_overlay is True
        assert config.global_settings.log_level == 'INFO'

    def test_sections_loaded(self, tmp_path):
        path = write(tmp_path, (
            '[global]\n'
            'log_level = "DEBUG"\n'
            'log_json = true\n'
            '[mclf]\n'
            'max_file_size = 4096\n'
            'text_header_overlay = false\n'
        ))

        config = LoaderConfig.load(path)

        assert config.global_settings.log_level == 'DEBUG'
        assert config.global_settings.log_json is True
        assert config.mclf.max_file_size == 4096
        assert config.mclf.text_header_overlay is False
        assert config.mclf.header_overlay is True

    def test_unknown_keys_ignored(self, tmp_path):
        path = write(tmp_path, '[mclf]\nno_such_option = 1\n[other]\nx = 2\n')
        assert LoaderConfig.load(path).mclf == LoaderConfig().mclf

    def test_explicit_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LoaderConfig.load(tmp_path / 'absent.toml')

    def test_invalid_toml_raises_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            LoaderConfig.load(write(tmp_path, '[mclf\n'))

    def test_output_dir(self, tmp_path):
        assert LoaderConfig().global_settings.output_dir == ''
        path = write(tmp_path, '[global]\noutput_dir = "reports"\n')
        assert LoaderConfig.load(path).global_settings.output_dir == 'reports'

    def test_to_dict(self):
        data = LoaderConfig().to_dict()
        assert set(data) == {'global_settings', 'mclf'}
        assert data['mclf']['header_overlay'] is True

    def test_load_options_from_config(self, tmp_path):
        path = write(tmp_path, '[mclf]\ntext_header_overlay = false\n')
        options = LoadOptions.from_config(LoaderConfig.load(path).mclf)
        assert options == LoadOptions(header_overlay=True, text_header_overlay=False)
