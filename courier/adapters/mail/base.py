from abc import ABC, abstractmethod

from courier.schemas.email import DispatchResult, OutboundEmail


class AbstractMailTransport(ABC):
	"""Interface for clients that attempt delivery of one outbound email."""

	@abstractmethod
	def send(self, message: OutboundEmail) -> DispatchResult:
		"""Attempt delivery of a message.

		Args:
			message: Recipients, subject and html/text bodies to deliver.

		Returns:
			DispatchResult: ``success=True`` with the provider message id, or
			``success=False`` with a diagnostic error string.

		Implementations may also raise; the delivery queue treats an exception
		the same way as an unsuccessful result.
		"""
		...
