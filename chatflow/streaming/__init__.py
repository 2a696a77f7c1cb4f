from .assembler import DONE_SENTINEL, AssemblerState, RoundListener, StreamAssembler
from .barrier import CompletionBarrier

__all__ = ["DONE_SENTINEL", "AssemblerState", "RoundListener", "StreamAssembler", "CompletionBarrier"]
