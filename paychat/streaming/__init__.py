"""
Streaming completion decoding for paychat
"""

from paychat.streaming.decoder import StreamDecoder, iter_tokens, DONE_SENTINEL

__all__ = ["StreamDecoder", "iter_tokens", "DONE_SENTINEL"]
