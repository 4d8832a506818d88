"""MIDI port discovery for the live and realtime modes.

Both selectors return ``(name, port)`` or ``(None, None)``. A missing or
broken device is logged, never raised, so the caller decides whether the
mode can run without it.
"""

import logging
import typing

import mido


logger = logging.getLogger(__name__)

PortResult = typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]


def _prompt_for_port (kind: str, names: typing.List[str]) -> typing.Optional[str]:

	"""Ask on the console which of several ports to use.

	Returns None if standard input closes before a choice is made.
	"""

	print(f"\nAvailable MIDI {kind} devices:\n")

	for number, name in enumerate(names, 1):
		print(f"  {number}. {name}")

	print()

	while True:
		try:
			choice = int(input(f"Select a device (1-{len(names)}): "))
			if 1 <= choice <= len(names):
				break
		except ValueError:
			pass
		except EOFError:
			logger.error(f"No MIDI {kind} device selected (input closed)")
			return None
		print(f"Enter a number between 1 and {len(names)}.")

	selected = names[choice - 1]

	print(f"\nTip: skip this prompt next time with:\n")
	print(f"  chordblink --{kind}-device \"{selected}\" ...\n")

	return selected


def _choose_port (
	kind: str,
	names: typing.List[str],
	device_name: typing.Optional[str],
	prompt: bool,
	fallback: bool
) -> typing.Optional[str]:

	"""Pick a port name, or None when no sensible choice exists."""

	if not names:
		logger.error(f"No MIDI {kind} devices found.")
		return None

	if device_name is not None:

		if device_name in names:
			return device_name

		if fallback:
			logger.warning(f"MIDI {kind} device '{device_name}' not found, falling back to '{names[0]}'")
			return names[0]

		logger.error(f"MIDI {kind} device '{device_name}' not found. Available devices: {names}")
		return None

	if len(names) == 1:
		logger.info(f"One MIDI {kind} found - using '{names[0]}'")
		return names[0]

	if prompt:
		return _prompt_for_port(kind, names)

	logger.error(f"Several MIDI {kind} devices found, pass one with --{kind}-device: {names}")
	return None


def select_output_device (device_name: typing.Optional[str] = None) -> PortResult:

	"""
	Open the MIDI output that drives the note display.

	With no name, a lone device is used and several devices are offered on
	the console. A named device that does not exist is an error.
	"""

	try:
		names = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {names}")

		selected = _choose_port("output", names, device_name, prompt=True, fallback=False)

		if selected is None:
			return None, None

		port = mido.open_output(selected)
		logger.info(f"Opened MIDI output: {selected}")
		return selected, port

	except Exception as exc:
		logger.error(f"Failed to open MIDI output: {exc}")
		return None, None


def select_input_device (device_name: typing.Optional[str] = None, callback: typing.Optional[typing.Callable] = None) -> PortResult:

	"""
	Open the keyboard input for realtime mode.

	``callback`` runs on mido's input thread for every incoming message.
	A named device that is not found falls back to the first input, so a
	mapping session keeps working when a controller's port name shifts.
	With no name, only a lone input is used; standard input is reserved for
	session commands, so there is no console prompt.
	"""

	try:
		names = mido.get_input_names()
		logger.info(f"Available MIDI inputs: {names}")

		selected = _choose_port("input", names, device_name, prompt=False, fallback=True)

		if selected is None:
			return None, None

		port = mido.open_input(selected, callback=callback)
		logger.info(f"Opened MIDI input: {selected}")
		return selected, port

	except Exception as exc:
		logger.error(f"Failed to open MIDI input: {exc}")
		return None, None
