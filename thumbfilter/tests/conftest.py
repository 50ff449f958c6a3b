"""
Pytest fixtures for thumbfilter tests.
"""

import io
import re

import pytest


class FakeConvert:
    """
    Stands in for ImageMagick convert, using Pillow.

    Understands the two argument shapes the converter builds:
    '<in> -thumbnail WxH> <out>' and '<in>[page] [-background white -flatten] <out>'.
    """

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        from PIL import Image

        self.calls.append(list(args))
        source, output = args[0], args[-1]
        page = 0
        match = re.fullmatch(r'(.*)\[(\d+)\]', source)
        if match:
            source, page = match.group(1), int(match.group(2))

        with Image.open(source) as img:
            img.seek(page)
            frame = img.convert('RGB')

        if '-thumbnail' in args:
            geometry = args[args.index('-thumbnail') + 1].rstrip('>')
            width, height = geometry.split('x')
            frame.thumbnail((int(width), int(height)))

        frame.save(output, format='JPEG')
        return ''


@pytest.fixture
def filter_config():
    """Fixture providing the default filter configuration."""
    from thumbfilter.filter_config import FilterConfig

    return FilterConfig()


@pytest.fixture
def staging(tmp_path):
    """Fixture providing a staging area under tmp_path."""
    from thumbfilter.temp_staging import TempStaging

    area = TempStaging(tmp_dir=str(tmp_path))
    yield area
    area.cleanup()


@pytest.fixture
def fake_convert(mocker):
    """Fixture replacing the convert executable with FakeConvert."""
    from thumbfilter.converter import ImageMagickConverter

    fake = FakeConvert()
    mocker.patch.object(ImageMagickConverter, '_command', return_value=fake)
    return fake


@pytest.fixture
def make_item():
    """Fixture providing a factory for items with one THUMBNAIL bundle."""
    from thumbfilter.item_record import Item, Bundle, Bitstream

    def _make(*thumbnails, handle='123456789/42'):
        bitstreams = [Bitstream(name=name, description=desc) for name, desc in thumbnails]
        return Item(handle=handle, bundles=[
            Bundle(name='ORIGINAL', bitstreams=[Bitstream(name='figure1.tif')]),
            Bundle(name='THUMBNAIL', bitstreams=bitstreams),
        ])

    return _make


@pytest.fixture
def large_image_bytes():
    """Fixture providing a 400x200 JPEG, larger than the default bounding box."""
    from PIL import Image

    img = Image.new('RGB', (400, 200), color='red')
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    from PIL import Image

    img = Image.new('RGBA', (100, 100), color=(255, 0, 0, 128))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def three_page_tiff(tmp_path):
    """Fixture providing a three-page TIFF: red, green, blue pages."""
    from PIL import Image

    pages = [Image.new('RGB', (300, 300), color=c) for c in ('red', 'green', 'blue')]
    path = tmp_path / 'document.tif'
    pages[0].save(str(path), format='TIFF', save_all=True, append_images=pages[1:])
    return path


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
