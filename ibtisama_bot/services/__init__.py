"""
Collaborator services used by the intent dispatcher.
"""

from .ai_responder import AIResponder
from .booking_repository import (
    BookingRepository,
    BookingRepositoryError,
    InMemoryBookingRepository,
    SupabaseBookingRepository,
    build_booking_repository,
)
from .media_flows import MediaFlows
from .transcriber import Transcriber
from .voice_synthesizer import VoiceSynthesisError, VoiceSynthesizer

__all__ = [
    'AIResponder',
    'BookingRepository',
    'BookingRepositoryError',
    'InMemoryBookingRepository',
    'SupabaseBookingRepository',
    'build_booking_repository',
    'MediaFlows',
    'Transcriber',
    'VoiceSynthesisError',
    'VoiceSynthesizer',
]
