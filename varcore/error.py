class IncompatibleAllelesError(Exception):
    """
    raised when the reference alleles of records being merged cannot be reconciled

    for example two records at the same position with references of the same length
    but different bases, or a shorter reference which is not a prefix of the longer one
    """
    pass


class DiscontinuityError(Exception):
    """
    raised when a state is added to an activity profile out of order or with a gap
    """
    pass


class InvalidArgumentError(ValueError):
    """
    raised when a required input is missing or malformed
    """
    pass
