"""Tests for CLI module."""

import json
import os
import pytest

from PIL import Image

from thumbfilter.cli import create_parser, main, cmd_check, get_filter_config, EXIT_SKIPPED
from thumbfilter.filter_config import FilterConfig
from thumbfilter.item_record import Item, Bundle, Bitstream


@pytest.fixture
def item_file(tmp_path):
    """Fixture providing an item with a generated and a custom thumbnail."""
    item = Item(handle='123456789/42', bundles=[
        Bundle(name='ORIGINAL', bitstreams=[
            Bitstream(name='figure1.tif'),
            Bitstream(name='figure2.tif'),
        ]),
        Bundle(name='THUMBNAIL', bitstreams=[
            Bitstream(name='figure1.tif.jpg', description='Generated Thumbnail'),
            Bitstream(name='figure2.tif.jpg', description='Detail chosen by curator'),
        ]),
    ])
    path = tmp_path / 'item.json'
    path.write_text(json.dumps(item.to_dict()))
    return str(path)


@pytest.fixture
def source_file(tmp_path, large_image_bytes):
    """Fixture providing a source image on disk."""
    path = tmp_path / 'figure1.tif'
    path.write_bytes(large_image_bytes)
    return str(path)


@pytest.fixture
def converter_found(mocker):
    """Fixture making converter validation succeed."""
    return mocker.patch.object(FilterConfig, 'find_converter', return_value='/usr/bin/convert')


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_created(self):
        """Test parser is created successfully."""
        parser = create_parser()
        assert parser is not None

    def test_check_command(self):
        """Test check command parsing."""
        parser = create_parser()
        args = parser.parse_args(['check', '--item', 'item.json', '--source', 'figure1.tif'])

        assert args.command == 'check'
        assert args.item == 'item.json'
        assert args.source == 'figure1.tif'

    def test_generate_command(self):
        """Test generate command parsing."""
        parser = create_parser()
        args = parser.parse_args([
            'generate', '--input', 'report.pdf', '--page', '0',
            '--max-width', '300', '--no-flatten', '-n'
        ])

        assert args.command == 'generate'
        assert args.page == 0
        assert args.max_width == 300
        assert args.no_flatten is True
        assert args.dry_run is True
        assert args.output_dir == '.'

    @pytest.mark.parametrize('page', ['-1', 'first'])
    def test_generate_rejects_bad_page(self, page, capsys):
        """Test pages must be zero-based integers."""
        parser = create_parser()

        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(['generate', '--input', 'report.pdf', '--page', page])

        assert exc_info.value.code == 2
        assert '--page' in capsys.readouterr().err


class TestGetFilterConfig:
    """Tests for building configuration from arguments."""

    def test_overrides(self, monkeypatch):
        """Test CLI values override the environment."""
        monkeypatch.setenv('THUMBNAIL_MAX_WIDTH', '250')
        monkeypatch.setenv('THUMBNAIL_DESCRIPTION', 'Env Thumbnail')
        parser = create_parser()
        args = parser.parse_args([
            'info', '--max-width', '320', '--no-flatten', '--replace-regex', '.* Thumbnail'
        ])

        config = get_filter_config(args)

        assert config.max_width == 320
        assert config.flatten is False
        assert config.bitstream_description == 'Env Thumbnail'
        assert config.pattern == '.* Thumbnail'

    def test_config_file(self, tmp_path, monkeypatch):
        """Test values come from the config file when not overridden."""
        monkeypatch.delenv('THUMBNAIL_MAX_HEIGHT', raising=False)
        path = tmp_path / 'filter.cfg'
        path.write_text("[thumbnail]\nmaxheight = 64\n")
        parser = create_parser()
        args = parser.parse_args(['info', '--config', str(path)])

        assert get_filter_config(args).max_height == 64


class TestMain:
    """Tests for main entry point."""

    def test_no_command(self):
        """Test running without command shows help."""
        result = main([])
        assert result == 1


class TestCmdCheck:
    """Tests for check command."""

    def test_generate(self, item_file, capsys):
        """Test a source with only a generated thumbnail gets a new one."""
        result = main(['check', '--item', item_file, '--source', 'figure1.tif'])

        assert result == 0
        assert capsys.readouterr().out.strip() == 'generate'

    def test_skip(self, item_file, capsys):
        """Test a source with a custom thumbnail is skipped."""
        result = main(['check', '--item', item_file, '--source', 'figure2.tif'])

        assert result == EXIT_SKIPPED
        assert capsys.readouterr().out.strip() == 'skip'

    def test_item_not_found(self):
        """Test check with a missing item file."""
        parser = create_parser()
        args = parser.parse_args(['check', '--item', '/nonexistent/item.json', '--source', 'a.tif'])

        assert cmd_check(args) == 1

    def test_invalid_pattern(self, item_file):
        """Test a malformed pattern stops the command before any work."""
        result = main(['check', '--item', item_file, '--source', 'figure1.tif', '--replace-regex', '(['])

        assert result == 1


class TestCmdGenerate:
    """Tests for generate command."""

    def test_generate(self, item_file, source_file, tmp_path, fake_convert, converter_found, capsys):
        """Test a thumbnail is written under the output name."""
        out_dir = tmp_path / 'out'

        result = main([
            'generate', '--item', item_file, '--input', source_file, '--output-dir', str(out_dir)
        ])

        assert result == 0
        thumb = out_dir / 'figure1.tif.jpg'
        with Image.open(thumb) as img:
            assert img.format == 'JPEG'
            assert img.size[0] <= 180 and img.size[1] <= 120
        out = capsys.readouterr().out
        assert 'Bundle: THUMBNAIL' in out
        assert 'Format: JPEG' in out
        assert 'Description: Generated Thumbnail' in out

    def test_skips_custom(self, item_file, source_file, tmp_path, fake_convert, converter_found):
        """Test a custom thumbnail stops generation."""
        result = main([
            'generate', '--item', item_file, '--input', source_file,
            '--source', 'figure2.tif', '--output-dir', str(tmp_path / 'out')
        ])

        assert result == EXIT_SKIPPED
        assert fake_convert.calls == []

    def test_force(self, item_file, source_file, tmp_path, fake_convert, converter_found):
        """Test --force generates over a custom thumbnail."""
        result = main([
            'generate', '--item', item_file, '--input', source_file,
            '--source', 'figure2.tif', '--output-dir', str(tmp_path / 'out'), '--force'
        ])

        assert result == 0
        assert os.path.exists(tmp_path / 'out' / 'figure2.tif.jpg')

    def test_dry_run(self, source_file, tmp_path, fake_convert, converter_found, capsys):
        """Test dry run converts nothing."""
        result = main(['generate', '--input', source_file, '--output-dir', str(tmp_path / 'out'), '-n'])

        assert result == 0
        assert fake_convert.calls == []
        assert 'Would generate' in capsys.readouterr().out

    def test_missing_input(self, tmp_path, fake_convert, converter_found):
        """Test a missing input file."""
        result = main(['generate', '--input', str(tmp_path / 'missing.tif')])

        assert result == 1

    def test_conversion_error(self, source_file, tmp_path, converter_found):
        """Test a failing converter returns an error and writes nothing."""
        result = main([
            'generate', '--input', source_file, '--output-dir', str(tmp_path / 'out'),
            '--converter', 'no-such-convert-binary'
        ])

        assert result == 1
        assert not os.path.exists(tmp_path / 'out' / 'figure1.tif.jpg')

    def test_missing_converter(self, source_file, tmp_path):
        """Test a converter missing from the search path is a configuration error."""
        result = main([
            'generate', '--input', source_file, '--search-path', str(tmp_path / 'empty')
        ])

        assert result == 1


class TestCmdInfo:
    """Tests for info command."""

    def test_info(self, converter_found, capsys):
        result = main(['info', '--description', 'IM Thumbnail'])

        assert result == 0
        out = capsys.readouterr().out
        assert 'bitstream_description: IM Thumbnail' in out
        assert 'Bundle: THUMBNAIL, format: JPEG' in out
