"""Exception types raised by the composition engine.

All of these are deterministic logic errors rather than transient I/O
failures, so nothing in the package retries them.  A host that catches one
should stop playback.
"""


class ConfigurationError(Exception):

	"""An ensemble, catalog, or composition setting is unusable.

	Raised for unknown section names, parts with no generator or no playback
	destination, non-positive pattern or section lengths, and unknown keys or
	scale types.
	"""


class TransitionError(ConfigurationError):

	"""The transition policy was asked to move on from a section it does not know."""


class InvariantViolation(Exception):

	"""An internal guarantee was broken, which indicates a defect rather than bad input."""
