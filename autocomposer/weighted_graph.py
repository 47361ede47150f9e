import typing

import autocomposer.errors


NodeType = typing.TypeVar("NodeType")


@typing.runtime_checkable
class RandomSource (typing.Protocol):

	"""
	The subset of ``random.Random`` used by the composition engine.

	Anything with these two methods can drive section transitions and chord
	choices, which lets tests script exact draws.
	"""

	def random (self) -> float:

		"""
		Return a uniform float in [0, 1).
		"""

		...

	def randint (self, a: int, b: int) -> int:

		"""
		Return a uniform integer in [a, b], both ends included.
		"""

		...


class WeightedGraph (typing.Generic[NodeType]):

	"""
	A directed graph whose outgoing edges carry probabilities.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty graph.
		"""

		self._edges: typing.Dict[NodeType, typing.Dict[NodeType, float]] = {}


	def add_transition (self, source: NodeType, target: NodeType, probability: float) -> None:

		"""
		Add a transition between two nodes.
		"""

		if probability <= 0:
			raise autocomposer.errors.ConfigurationError("Transition probability must be positive")

		if source not in self._edges:
			self._edges[source] = {}

		# A repeated edge strengthens the existing one.
		if target in self._edges[source]:
			self._edges[source][target] += probability

		else:
			self._edges[source][target] = probability


	def get_transitions (self, source: NodeType) -> typing.List[typing.Tuple[NodeType, float]]:

		"""
		Return ``(target, probability)`` pairs for a source node in insertion order.
		"""

		if source not in self._edges:
			return []

		return list(self._edges[source].items())


	def sources (self) -> typing.List[NodeType]:

		"""
		Return every node with at least one outgoing edge.
		"""

		return list(self._edges)


	def targets (self) -> typing.Set[NodeType]:

		"""
		Return every node that some edge points at.
		"""

		return {target for edges in self._edges.values() for target in edges}


	def total_probability (self, source: NodeType) -> float:

		"""
		Return the summed probability of a source node's outgoing edges.
		"""

		return sum(probability for _, probability in self.get_transitions(source))


	def choose_next (self, source: NodeType, rng: RandomSource) -> NodeType:

		"""
		Choose the next node from a source with a single uniform draw.

		The draw is walked along the cumulative probabilities in insertion
		order, so ``[("verse", 0.7), ("bridge", 0.3)]`` yields ``"verse"`` for
		draws below 0.7.
		"""

		options = self.get_transitions(source)

		if not options:
			raise autocomposer.errors.TransitionError(f"No transitions defined from {source!r}")

		roll = rng.random() * self.total_probability(source)
		accum = 0.0

		for target, probability in options:
			accum += probability
			if roll < accum:
				return target

		# Floating point shortfall on the final edge.
		return options[-1][0]
