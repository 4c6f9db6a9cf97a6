"""Registry driven SCALE codec for dynamic values."""

from .compact import decode_compact as decode_compact
from .compact import encode_compact as encode_compact
from .serialization import ByteCursor as ByteCursor
from .serialization import Decoded as Decoded
from .serialization import Decoder as Decoder
from .serialization import Encoder as Encoder
from .serialization import decode as decode
from .serialization import encode as encode
from .types import *
from .value import *
