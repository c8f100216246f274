# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The generic clocked block and globals."""

from docstring_inheritance import NumpyDocstringInheritanceInitMeta

# default sample and coefficient format, Q1.15
DATA_WIDTH = 16
COEFF_WIDTH = 16


class clocked_block(metaclass=NumpyDocstringInheritanceInitMeta):
    """
    Generic clocked block, all blocks should inherit from this class and
    implement its methods.

    A block models synchronous hardware as an explicit, immutable state
    snapshot. One clock tick is split in two halves: ``next_state``
    computes the next snapshot from the committed one and the current
    inputs without modifying anything, then ``commit`` replaces the
    snapshot. Blocks that are ticked together must all compute their
    next state before any of them commits, which gives register
    semantics: every read in a tick sees the values from the previous
    tick.

    By using the metaclass NumpyDocstringInheritanceInitMeta, parameter
    and attribute documentation can be inherited by the child classes.

    Attributes
    ----------
    state : tuple
        The committed state of the block, a NamedTuple that is never
        modified in place.
    """

    def initial_state(self):
        """Return the state of the block after a reset."""
        raise NotImplementedError

    def next_state(self, *args, **kwargs):
        """
        Compute the state after one clock tick, from the committed state
        and the inputs. This must not modify the block.

        Returns
        -------
        tuple
            The next state, to be passed to ``commit``.
        """
        raise NotImplementedError

    def commit(self, state) -> None:
        """Replace the committed state, i.e. the clock edge.

        Blocks which own sub-blocks commit the sub-block states here too.
        """
        self.state = state

    def tick(self, *args, **kwargs):
        """Advance the block by one clock tick.

        The generic implementation calls ``next_state`` then ``commit``.
        Parameters are passed through to ``next_state``.
        """
        state = self.next_state(*args, **kwargs)
        self.commit(state)
        return state

    def reset_state(self) -> None:
        """Reset the block to its initial state."""
        self.commit(self.initial_state())
