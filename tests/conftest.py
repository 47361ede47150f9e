import typing

import mido
import pytest


class FakeMidiOut:

	"""Minimal MIDI output stub that remembers what was sent."""

	def __init__ (self) -> None:

		"""Start with an empty message log."""

		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record outgoing MIDI messages."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> typing.List[FakeMidiOut]:

	"""Patch mido to use fake MIDI outputs, returning every port opened during the test."""

	opened: typing.List[FakeMidiOut] = []

	def _fake_open_output (name: str) -> FakeMidiOut:
		opened.append(FakeMidiOut())
		return opened[-1]

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)

	return opened


class ScriptedRandom:

	"""A random source that replays fixed draws, for exercising exact decision paths."""

	def __init__ (self, floats: typing.Sequence[float] = (), ints: typing.Sequence[int] = ()) -> None:

		"""Queue up the values random() and randint() will return, in order."""

		self.floats = list(floats)
		self.ints = list(ints)
		self.randint_calls: typing.List[typing.Tuple[int, int]] = []

	def random (self) -> float:

		"""Return the next scripted float."""

		return self.floats.pop(0)

	def randint (self, a: int, b: int) -> int:

		"""Return the next scripted integer, checking it lies in range."""

		self.randint_calls.append((a, b))
		value = self.ints.pop(0)
		assert a <= value <= b, f"scripted value {value} outside [{a}, {b}]"
		return value


@pytest.fixture
def scripted_random () -> typing.Type[ScriptedRandom]:

	"""Provide the ScriptedRandom class to tests."""

	return ScriptedRandom
