"""Protocol layer: frame reassembly, digit and attribute tables."""

from .framing import FrameAssembler, Frame, CompleteFrame, FramingError, PowerOnSignal
from .digits import Symbol, decode_digit
from .attributes import Attribute, decode_attributes
