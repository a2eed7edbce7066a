"""
the allele model: an immutable base sequence which may be flagged as the reference
"""
import re

from .constants import DNA_ALPHABET, NO_CALL, SPAN_DEL
from .error import InvalidArgumentError

SYMBOLIC_PATTERN = re.compile(r'^(<[^<>]+>|.*[\[\]].*|\.\w+|\w+\.)$')


class Allele:
    """
    a reference or alternate allele

    Two alleles are equal when their (upper-cased) bases and their reference flags are equal

    Example:
        >>> Allele('a', True) == Allele('A', True)
        True
        >>> Allele('A', True) == Allele('A')
        False
    """

    __slots__ = ('_bases', '_is_ref', '_is_symbolic')

    def __init__(self, bases, is_reference=False):
        if isinstance(bases, Allele):
            bases = bases.bases
        if isinstance(bases, (bytes, bytearray)):
            bases = bases.decode('ascii')
        if bases is None or bases == '':
            raise InvalidArgumentError('an allele must have at least one base or symbol')
        symbolic = Allele.would_be_symbolic(bases)
        if not symbolic:
            bases = bases.upper()
        if bases == NO_CALL:
            if is_reference:
                raise InvalidArgumentError('the no-call allele cannot be a reference allele')
        elif symbolic:
            if is_reference:
                raise InvalidArgumentError('a symbolic allele cannot be a reference allele', bases)
        elif not all(base in DNA_ALPHABET for base in bases):
            raise InvalidArgumentError('unexpected character in allele bases', bases)
        object.__setattr__(self, '_bases', bases)
        object.__setattr__(self, '_is_ref', bool(is_reference))
        object.__setattr__(self, '_is_symbolic', symbolic)

    @classmethod
    def create(cls, bases, is_reference=False):
        """
        create an allele, alleles passed in are re-flagged when the reference flag differs
        """
        if isinstance(bases, Allele) and bases.is_reference == is_reference:
            return bases
        return cls(bases, is_reference)

    @staticmethod
    def would_be_symbolic(bases):
        """
        Example:
            >>> Allele.would_be_symbolic('<DEL>')
            True
            >>> Allele.would_be_symbolic('A[1:100[')
            True
            >>> Allele.would_be_symbolic('ACT')
            False
        """
        if bases == SPAN_DEL:
            return True
        return bool(SYMBOLIC_PATTERN.match(bases))

    def __setattr__(self, attr, value):
        raise AttributeError('alleles are immutable', attr)

    @property
    def bases(self):
        return self._bases

    @property
    def is_reference(self):
        return self._is_ref

    @property
    def is_non_reference(self):
        return not self._is_ref

    @property
    def is_symbolic(self):
        return self._is_symbolic

    @property
    def is_no_call(self):
        return self._bases == NO_CALL

    @property
    def is_called(self):
        return not self.is_no_call

    @property
    def is_span_del(self):
        return self._bases == SPAN_DEL

    def length(self):
        """
        the number of bases, 0 for symbolic alleles
        """
        if self._is_symbolic or self.is_no_call:
            return 0
        return len(self._bases)

    def __len__(self):
        return self.length()

    def __bool__(self):
        return True

    def display_string(self):
        return self._bases

    def bases_match(self, other):
        """
        compare the bases of two alleles ignoring the reference flag
        """
        other_bases = other.bases if isinstance(other, Allele) else str(other).upper()
        return self._bases == other_bases

    def __eq__(self, other):
        if not isinstance(other, Allele):
            return NotImplemented
        return self._is_ref == other._is_ref and self._bases == other._bases

    def __hash__(self):
        return hash((self._bases, self._is_ref))

    def __repr__(self):
        return '{}({}{})'.format(self.__class__.__name__, self._bases, '*' if self._is_ref else '')

    def __str__(self):
        return self._bases


Allele.NO_CALL = Allele(NO_CALL)


def extend(allele, bases):
    """
    append bases to the end of an allele, keeping its reference flag

    Raises:
        InvalidArgumentError: if the allele is symbolic or a no-call

    Example:
        >>> extend(Allele('A'), 'TC')
        Allele(ATC)
    """
    if allele.is_symbolic or allele.is_no_call:
        raise InvalidArgumentError('cannot extend a symbolic or no-call allele', allele)
    return Allele(allele.bases + bases, allele.is_reference)


def is_usable_alternate_allele(allele):
    """
    True for alternate alleles with a real base sequence
    """
    return not (allele.is_reference or allele.is_symbolic or allele.is_no_call)
