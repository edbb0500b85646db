"""Transmission state machine for managing state transitions."""

from app.schemas import TransmissionState


class TransmissionStateMachine:
    """State machine for transmission lifecycle.

    State flow with triggers:
    - PREPARANDO (start request persisted) -> ATIVA (media server accepted the stream) | ERRO
    - ATIVA -> FINALIZADA (stop request)
    - FINALIZADA/ERRO are terminal states
    """

    TRANSITIONS: dict[TransmissionState, set[TransmissionState]] = {
        TransmissionState.PREPARANDO: {
            TransmissionState.ATIVA,
            TransmissionState.ERRO,
        },
        TransmissionState.ATIVA: {TransmissionState.FINALIZADA},
        TransmissionState.FINALIZADA: set(),
        TransmissionState.ERRO: set(),
    }

    TERMINAL_STATES: set[TransmissionState] = {
        TransmissionState.FINALIZADA,
        TransmissionState.ERRO,
    }

    @classmethod
    def can_transition(cls, current: TransmissionState, new: TransmissionState) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: TransmissionState) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_transitions(cls, state: TransmissionState) -> set[TransmissionState]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: TransmissionState) -> set[TransmissionState]:
        """Get all states that can transition to the target state."""
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
