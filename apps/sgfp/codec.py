import base64
import binascii
import io

from PIL import Image

from .exceptions import TemplateDecodeError


def encode(data: bytes) -> str:
    """
    Encode a binary template or image as transport-safe text

    Args:
        data: Raw bytes, may be empty

    Returns:
        Standard base64 string (with padding)
    """
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    """
    Decode text produced by encode() back to the exact original bytes

    Args:
        text: Base64 encoded string, surrounding whitespace is ignored

    Returns:
        Decoded bytes

    Raises:
        TemplateDecodeError: If the text is not a string or not valid base64
    """
    if not isinstance(text, str):
        raise TemplateDecodeError(
            "Invalid template encoding: expected text, got %s" % type(text).__name__
        )

    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise TemplateDecodeError("Invalid template encoding: %s" % str(e))


def grayscale_to_png(raw_image: bytes, width: int, height: int) -> bytes:
    """
    Convert an 8-bit grayscale pixel buffer (row-major) into PNG bytes

    Args:
        raw_image: width * height bytes as delivered by the scanner
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        PNG encoded image

    Raises:
        ValueError: If the buffer size does not match the dimensions
    """
    if width <= 0 or height <= 0 or len(raw_image) != width * height:
        raise ValueError(
            "Image buffer of %s bytes does not match %sx%s"
            % (len(raw_image), width, height)
        )

    img = Image.frombytes("L", (width, height), raw_image)

    output = io.BytesIO()
    img.save(output, format="PNG", optimize=True)
    return output.getvalue()
