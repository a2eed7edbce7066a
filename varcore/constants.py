"""
module responsible for the controlled vocabulary and tunable defaults used throughout the varcore package
"""
import os

from Bio.Data.IUPACData import ambiguous_dna_values

from .error import InvalidArgumentError

ENV_VAR_PREFIX = 'VARCORE'


def cast_boolean(input_value):
    """
    cast a string or other value to a boolean

    Example:
        >>> cast_boolean('false')
        False
        >>> cast_boolean('1')
        True
    """
    value = str(input_value).lower()
    if value in ['t', 'true', '1', 'y', 'yes', 'on']:
        return True
    elif value in ['f', 'false', '0', 'n', 'no', 'off']:
        return False
    raise TypeError('casting to boolean failed', input_value)


def float_fraction(num):
    """
    cast input to a float between 0 and 1

    Raises:
        InvalidArgumentError: if the input cannot be cast to a float or the number is not between 0 and 1
    """
    try:
        num = float(num)
    except ValueError:
        raise InvalidArgumentError('Must be a value between 0 and 1', num)
    if num < 0 or num > 1:
        raise InvalidArgumentError('Must be a value between 0 and 1', num)
    return num


class Namespace:
    """
    Namespace to hold module constants

    Example:
        >>> nspace = Namespace(thing=1, otherthing=2)
        >>> nspace.thing
        1
        >>> nspace.otherthing
        2
    """

    def __init__(self, *pos, **kwargs):
        object.__setattr__(self, '_defns', {})
        object.__setattr__(self, '_types', {})
        object.__setattr__(self, '_members', {})
        object.__setattr__(self, '_env_overwritable', set())
        object.__setattr__(self, '_env_prefix', ENV_VAR_PREFIX)

        for k in pos:
            if k in self._members:
                raise AttributeError('Cannot respecify existing attribute', k, self._members[k])
            self[k] = k

        for attr, val in kwargs.items():
            if attr in self._members:
                raise AttributeError('Cannot respecify existing attribute', attr, self._members[attr])
            self[attr] = val

        for attr, value in self._members.items():
            self._set_type(attr, type(value))

    def __repr__(self):
        return '{}({})'.format(
            self.__class__.__name__, ', '.join(sorted(['{}={}'.format(k, repr(v)) for k, v in self.items()]))
        )

    def get_env_name(self, attr):
        """
        Get the name of the corresponding environment variable

        Example:
            >>> nspace = Namespace(a=1)
            >>> nspace.get_env_name('a')
            'VARCORE_A'
        """
        if self._env_prefix:
            return '{}_{}'.format(self._env_prefix, attr).upper()
        return attr.upper()

    def get_env_var(self, attr):
        """
        retrieve the environment variable definition of a given attribute
        """
        env_name = self.get_env_name(attr)
        env = os.environ[env_name].strip()
        attr_type = self._types.get(attr, str)
        return attr_type(env)

    def is_env_overwritable(self, attr):
        """
        Returns:
            bool: True if the variable is overrided by specifying the environment variable equivalent
        """
        return attr in self._env_overwritable

    def __getattribute__(self, attr):
        try:
            return object.__getattribute__(self, attr)
        except AttributeError as err:
            variables = object.__getattribute__(self, '_members')
            if attr not in variables:
                raise err
            if self.is_env_overwritable(attr):
                try:
                    return self.get_env_var(attr)
                except KeyError:
                    pass
            return variables[attr]

    def items(self):
        """
        Example:
            >>> Namespace(thing=1, otherthing=2).items()
            [('thing', 1), ('otherthing', 2)]
        """
        return [(k, self[k]) for k in self.keys()]

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, val):
        self.__setattr__(key, val)

    def __setattr__(self, attr, val):
        if attr.startswith('_'):
            raise ValueError('cannot set private', attr)
        object.__getattribute__(self, '_members')[attr] = val

    def keys(self):
        return [k for k in self._members]

    def values(self):
        return [self[k] for k in self._members]

    def enforce(self, value):
        """
        checks that the current namespace has a given value

        Returns:
            the input value

        Raises:
            KeyError: the value did not exist

        Example:
            >>> nspace = Namespace(thing=1, otherthing=2)
            >>> nspace.enforce(1)
            1
        """
        if value not in self.values():
            raise KeyError('value {0} is not a valid member of '.format(repr(value)), self.values())
        return value

    def reverse(self, value):
        """
        for a given value, return the associated key

        Raises:
            KeyError: the value is not unique
            KeyError: the value is not assigned
        """
        result = [key for key in self.keys() if self[key] == value]
        if len(result) > 1:
            raise KeyError('could not reverse, the mapping is not unique', value, result)
        elif not result:
            raise KeyError('input value is not assigned to a key', value)
        return result[0]

    def __iter__(self):
        return iter(self.keys())

    def _set_type(self, attr, cast_type):
        if cast_type == bool:
            self._types[attr] = cast_boolean
        else:
            self._types[attr] = cast_type

    def define(self, attr, *pos):
        """
        Get the definition of a given attribute or return a default (when given) if the attribute does not exist

        Raises:
            KeyError: the attribute does not exist and a default was not given
        """
        if len(pos) > 1:
            raise TypeError('too many arguments. define takes a single \'default\' value argument')
        try:
            return self._defns[attr]
        except KeyError as err:
            if pos:
                return pos[0]
            raise err

    def add(self, attr, value, defn=None, cast_type=None, env_overwritable=False):
        """
        Add an attribute to the name space

        Args:
            attr (str): name of the attribute being added
            value: the value of the attribute
            defn (str): the definition of the attribute
            cast_type (callable): the function to use in casting the value
            env_overwritable (bool): True if this attribute will be overriden by its environment variable equivalent

        Example:
            >>> nspace = Namespace()
            >>> nspace.add('thing', 1, 'I am a thing', int)
        """
        if cast_type:
            self._set_type(attr, cast_type)
        else:
            self._set_type(attr, type(value))
        if defn:
            self._defns[attr] = defn
        if env_overwritable:
            self._env_overwritable.add(attr)
        self[attr] = value

    def __call__(self, value):
        try:
            return self.enforce(value)
        except KeyError:
            raise InvalidArgumentError(
                'Invalid value {} for {}. Must be a valid member: {}'.format(
                    repr(value), self.__class__.__name__, self.values()
                )
            )


DNA_ALPHABET = frozenset(ambiguous_dna_values.keys())
""":class:`frozenset`: IUPAC (ambiguous) DNA base symbols accepted in allele sequences"""

SPAN_DEL = '*'
""":class:`str`: the allele used to mark a position spanned by an upstream deletion"""

NO_CALL = '.'
""":class:`str`: the no-call allele (and the missing value for VCF-like fields)"""

FILTERED_RECORD_MERGE_TYPE = Namespace(
    'KEEP_IF_ANY_UNFILTERED', 'KEEP_IF_ALL_UNFILTERED', 'KEEP_UNCONDITIONAL'
)
"""
:class:`Namespace`: how the filters of records being merged are combined

- ``KEEP_IF_ANY_UNFILTERED``: the merged record passes if any input passes
- ``KEEP_IF_ALL_UNFILTERED``: the merged record is filtered if any input is filtered
- ``KEEP_UNCONDITIONAL``: the merged record always passes
"""

GENOTYPE_MERGE_TYPE = Namespace('UNIQUIFY', 'PRIORITIZE', 'UNSORTED', 'REQUIRE_UNIQUE')
"""
:class:`Namespace`: how the sample genotypes of records being merged are combined

- ``UNIQUIFY``: samples are suffixed with the 1-based input position of the record they came from
- ``PRIORITIZE``: the first record in priority order with the sample wins
- ``UNSORTED``: the first record in input order with the sample wins
- ``REQUIRE_UNIQUE``: reserved, currently handled as ``PRIORITIZE``
"""

GENOTYPE_ASSIGNMENT_METHOD = Namespace(
    'SET_TO_NO_CALL', 'USE_PLS_TO_ASSIGN', 'BEST_MATCH_TO_ORIGINAL', 'DO_NOT_ASSIGN_GENOTYPES'
)
"""
:class:`Namespace`: how genotype calls are assigned after the allele set of a record changes
"""

STATE_TYPE = Namespace('NONE', 'HIGH_QUALITY_SOFT_CLIPS')
"""
:class:`Namespace`: the kind of evidence an activity profile state carries
"""

MERGE_TAG = Namespace(
    INTERSECTION='Intersection',
    FILTER_IN_ALL='FilterInAll',
    REF_IN_ALL='ReferenceInAll',
    FILTER_PREFIX='filterIn',
)
"""
:class:`Namespace`: values of the set annotation describing where a merged record came from
"""

VCF_KEY = Namespace(
    DEPTH='DP',
    ALLELE_COUNT='AC',
    ALLELE_NUMBER='AN',
    ALLELE_FREQUENCY='AF',
    STRAND_COUNT_BY_SAMPLE='SAC',
)
""":class:`Namespace`: info and format keys with special handling"""

DEFAULTS = Namespace()
DEFAULTS.add(
    'active_threshold',
    0.5,
    defn='filtered activity probability above which a position is considered active',
    cast_type=float_fraction,
    env_overwritable=True,
)
DEFAULTS.add(
    'max_filter_size',
    50,
    defn='largest half-width of the band pass gaussian kernel',
    cast_type=int,
    env_overwritable=True,
)
DEFAULTS.add(
    'sigma',
    17.0,
    defn='standard deviation of the band pass gaussian kernel',
    cast_type=float,
    env_overwritable=True,
)
DEFAULTS.add(
    'max_prob_propagation_distance',
    50,
    defn='furthest distance a single state may spread its probability before band pass filtering',
    cast_type=int,
    env_overwritable=True,
)
DEFAULTS.add(
    'min_prob_to_keep_in_filter',
    1e-5,
    defn='kernel tail weights below this value are dropped when the filter size is adaptive',
    cast_type=float,
)
DEFAULTS.add(
    'sum_gl_thresh_nocall',
    -0.1,
    defn='log10 likelihood vectors summing above this are considered uninformative',
    cast_type=float,
)
