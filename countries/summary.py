import io
import logging
import os
import tempfile

from django.utils import formats, timezone
from PIL import Image, ImageDraw, ImageFont

from .exceptions import RenderError

logger = logging.getLogger(__name__)

CANVAS_SIZE = (600, 400)
TOP_N = 5


def _load_fonts():
    try:
        return ImageFont.truetype("DejaVuSans.ttf", 20), ImageFont.truetype("DejaVuSans.ttf", 16)
    except OSError:
        font = ImageFont.load_default()
        return font, font


def format_timestamp(timestamp):
    if timezone.is_aware(timestamp):
        timestamp = timezone.localtime(timestamp)
    return formats.date_format(timestamp, "DATETIME_FORMAT")


def render_summary_image(total_countries, top5, timestamp):
    """
    Draw the summary PNG and return its bytes.

    ``top5`` is an ordered iterable of mappings with ``name`` and
    ``estimated_gdp``; only the first TOP_N entries are drawn.
    """
    img = Image.new("RGB", CANVAS_SIZE, color="white")
    draw = ImageDraw.Draw(img)
    font_title, font_body = _load_fonts()

    draw.text((20, 20), f"Total countries recorded: {total_countries}", fill="black", font=font_title)
    draw.text((20, 70), "Top 5 by estimated GDP:", fill="black", font=font_body)

    y = 100
    entries = list(top5)[:TOP_N]
    if not entries:
        draw.text((40, y), "No GDP data available.", fill="gray", font=font_body)
    for rank, entry in enumerate(entries, 1):
        gdp = entry["estimated_gdp"]
        value = "N/A" if gdp is None else gdp
        draw.text((40, y), f"{rank}. {entry['name']} - {value}", fill="blue", font=font_body)
        y += 30

    draw.text((20, 340), f"Updated at: {format_timestamp(timestamp)}", fill="black", font=font_body)

    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


def write_summary_image(data, path):
    """Replace ``path`` with ``data`` atomically (temp file + rename)."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".summary-", suffix=".png")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return path


def generate_summary_image(total_countries, top5, timestamp, path):
    """
    Generate a summary PNG showing total countries, top 5 GDP countries,
    and last refresh timestamp. Saves image to ``path``.
    """
    try:
        data = render_summary_image(total_countries, top5, timestamp)
        write_summary_image(data, path)
    except (OSError, ValueError) as e:
        raise RenderError(f"Could not generate summary image: {e}") from e
    logger.info("Summary image written to %s", path)
    return path
