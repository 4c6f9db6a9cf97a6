"""contract_transcode - Dynamic SCALE transcoding of smart contract calls."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("contract-transcode")
except PackageNotFoundError:
    __version__ = "(local)"
