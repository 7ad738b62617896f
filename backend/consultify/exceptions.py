# consultify/exceptions.py


class ConsultationNotFound(Exception):
    pass


class InvalidTransition(Exception):
    """The consultation is not in a state that allows the requested change."""


class InvalidPrescription(Exception):
    pass


class MessageNotFound(Exception):
    pass
