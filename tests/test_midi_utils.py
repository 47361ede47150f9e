import mido
import pytest

import autocomposer.errors
import autocomposer.midi_utils


def test_configured_device_is_used () -> None:

	assert autocomposer.midi_utils.choose_output("USB Synth", ["IAC Bus 1", "USB Synth"]) == "USB Synth"


def test_first_device_when_none_configured () -> None:

	"""Several outputs and no configured name picks the first without asking."""

	assert autocomposer.midi_utils.choose_output(None, ["IAC Bus 1", "USB Synth"]) == "IAC Bus 1"


def test_no_devices () -> None:

	assert autocomposer.midi_utils.choose_output(None, []) is None


def test_missing_configured_device_is_a_configuration_error () -> None:

	with pytest.raises(autocomposer.errors.ConfigurationError, match="Available outputs: IAC Bus 1"):
		autocomposer.midi_utils.choose_output("USB Synth", ["IAC Bus 1"])


def test_unusable_backend_lists_nothing (monkeypatch: pytest.MonkeyPatch) -> None:

	"""A missing MIDI backend is logged, not raised."""

	def broken () -> list:
		raise ImportError("No module named 'rtmidi'")

	monkeypatch.setattr(mido, "get_output_names", broken)

	assert autocomposer.midi_utils.available_outputs() == []
	assert autocomposer.midi_utils.open_output() == (None, None)


def test_refused_device_opens_nothing (monkeypatch: pytest.MonkeyPatch) -> None:

	def refuse (name: str) -> None:
		raise OSError("device busy")

	monkeypatch.setattr(mido, "get_output_names", lambda: ["USB Synth"])
	monkeypatch.setattr(mido, "open_output", refuse)

	assert autocomposer.midi_utils.open_output("USB Synth") == (None, None)


def test_open_output_returns_name_and_port (patch_midi: list) -> None:

	name, port = autocomposer.midi_utils.open_output()

	assert name == "Dummy MIDI"
	assert port is patch_midi[0]
