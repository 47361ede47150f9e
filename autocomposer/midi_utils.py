"""Choosing and opening the MIDI output port.

Nothing here waits for user input.  The device comes from
``midi.device_name`` in ``config.yaml`` when it is set; otherwise the first
output mido reports is used.  A machine with no outputs (or no MIDI backend)
still composes: rendering and recording need no port.
"""

import logging
import typing

import mido

import autocomposer.errors


logger = logging.getLogger(__name__)


def available_outputs () -> typing.List[str]:

	"""Return the MIDI output names mido can see, or an empty list when no backend works."""

	try:
		return list(mido.get_output_names())

	except Exception:
		logger.exception("Could not list MIDI outputs (is python-rtmidi installed?)")
		return []


def choose_output (device_name: typing.Optional[str], outputs: typing.Sequence[str]) -> typing.Optional[str]:

	"""Pick the output to open from the configured name and the outputs on offer.

	Returns None when nothing is configured and no output exists.

	Raises:
		ConfigurationError: If ``device_name`` names an output that is not available.

	Example:
		```python
		choose_output(None, ["IAC Bus 1", "USB Synth"])          # → "IAC Bus 1"
		choose_output("USB Synth", ["IAC Bus 1", "USB Synth"])   # → "USB Synth"
		```
	"""

	if device_name is not None:

		if device_name not in outputs:
			available = ", ".join(outputs) if outputs else "none"
			raise autocomposer.errors.ConfigurationError(
				f"MIDI output {device_name!r} not found. Available outputs: {available}"
			)

		return device_name

	if not outputs:
		logger.warning("No MIDI outputs found; nothing will be heard")
		return None

	if len(outputs) > 1:
		logger.info(f"Using MIDI output {outputs[0]!r}; set midi.device_name in config.yaml to use one of {list(outputs[1:])}")

	return outputs[0]


def open_output (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open the chosen output port.

	Returns ``(name, port)``, or ``(None, None)`` when there is nothing to
	open or the device refused.  A configured name that does not exist is
	a configuration error and propagates.
	"""

	name = choose_output(device_name, available_outputs())

	if name is None:
		return None, None

	try:
		port = mido.open_output(name)

	except Exception:
		logger.exception(f"Failed to open MIDI output {name!r}")
		return None, None

	logger.info(f"Opened MIDI output {name!r}")

	return name, port
