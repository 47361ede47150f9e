import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A small synchronous publish/subscribe registry keyed by event name.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def listeners (self, event_name: str) -> typing.List[CallbackType]:

		"""
		Return a copy of the callbacks registered for an event name.
		"""

		return list(self._listeners.get(event_name, []))


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for an event in registration order.

		Listeners are snapshotted first, so a callback may unregister itself
		(or another listener) while the event is being delivered.
		"""

		for callback in self.listeners(event_name):
			callback(*args, **kwargs)
