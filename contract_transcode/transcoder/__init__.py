"""Contract call transcoding from literal argument text."""

from .messages import ArgSpec as ArgSpec
from .messages import ContractCatalog as ContractCatalog
from .messages import ContractTranscoder as ContractTranscoder
from .messages import DecodedCall as DecodedCall
from .messages import EventField as EventField
from .messages import EventSpec as EventSpec
from .messages import MessageSpec as MessageSpec
from .metadata import ContractMetadata as ContractMetadata
from .metadata import load_metadata as load_metadata
from .metadata import parse_metadata as parse_metadata
from .parser import parse as parse
from .selector import selector_for as selector_for
