import logging

log = logging.getLogger(__name__)


class SessionState:
    """Resumability data of a gateway session.

    This is detached from the websocket itself, since the websocket
    will be closed sooner or later and the state is what we need
    to resume on a new one.

    Only :class:`GatewayClient` writes to it, from its read loop.

    Attributes
    ----------
    session_id: str
        Session ID given on ``READY``. Empty before that.
    sequence: int or None
        Sequence number of the last received dispatch.
    resume_gateway_url: str
        URL to connect to when resuming. Given on ``READY``.
    resumable: bool
        If the session can be resumed, only true after a ``READY``.
    """
    def __init__(self):
        self.clear()

    def __repr__(self):
        return (f'<SessionState session_id={self.session_id!r} '
                f'seq={self.sequence} resumable={self.resumable}>')

    def clear(self):
        """Reset all fields, the next connection will be a fresh one."""
        self.session_id = ''
        self.sequence = None
        self.resume_gateway_url = ''
        self.resumable = False

    def update_sequence(self, seq):
        """Save the sequence number of a dispatch."""
        if seq is None:
            return

        if self.sequence is not None and seq < self.sequence:
            log.warning('[state] sequence went back from %d to %d',
                        self.sequence, seq)

        self.sequence = seq

    def mark_ready(self, session_id, resume_gateway_url) -> bool:
        """Make the session resumable with data from a ``READY``.

        Returns
        -------
        bool
            If the session is now resumable.
        """
        if not session_id or not resume_gateway_url:
            log.warning('[state] READY without session_id or '
                        'resume_gateway_url, session is not resumable')
            self.resumable = False
            return False

        self.session_id = session_id
        self.resume_gateway_url = resume_gateway_url
        self.resumable = True
        return True

    def resume_payload(self, token) -> dict:
        """The ``d`` field of an OP 6 Resume."""
        return {
            'token': token,
            'session_id': self.session_id,
            'seq': self.sequence,
        }
