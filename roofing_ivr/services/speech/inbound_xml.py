"""InboundXML response documents for the telephony platform."""
from typing import Iterable, Optional, Sequence, Union

from roofing_ivr.services.flow.steps import InputMode

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def escape_xml(text: str) -> str:
    """Escape XML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


class InboundXMLBuilder:
    """Builds the verbs of a response document.

    Each verb method returns an XML fragment; ``document`` wraps fragments in
    the ``<Response>`` envelope.
    """

    def __init__(self, voice: str = "alice", language: str = "en-US"):
        self.voice = voice
        self.language = language

    def say(self, text: Union[str, Sequence[str]]) -> str:
        """
        Generate a Say verb.

        Args:
            text: Sentence, or list of sentences spoken as one utterance

        Returns:
            Say XML fragment
        """
        content = text if isinstance(text, str) else " ".join(text)
        return (
            f'<Say voice="{escape_xml(self.voice)}" language="{escape_xml(self.language)}">'
            f"{escape_xml(content)}</Say>"
        )

    def gather(
        self,
        action_url: str,
        prompts: Iterable[str],
        input_mode: Optional[InputMode] = None,
        num_digits: Optional[int] = None,
        hints: Optional[Sequence[str]] = None,
    ) -> str:
        """
        Generate a Gather verb that speaks prompts and collects input.

        Args:
            action_url: URL the platform posts the result to
            prompts: Sentences spoken while listening
            input_mode: Input to listen for; keypad only when num_digits is set,
                speech and keypad otherwise
            num_digits: Fixed number of keypad digits to collect
            hints: Speech recognition hints

        Returns:
            Gather XML fragment
        """
        if input_mode is None:
            input_mode = InputMode.DTMF if num_digits else InputMode.SPEECH_DTMF
        attrs = f'input="{input_mode.value}"'
        if num_digits:
            attrs += f' numDigits="{int(num_digits)}"'
        if hints:
            attrs += f' hints="{escape_xml(",".join(hints))}"'
        attrs += (
            f' language="{escape_xml(self.language)}"'
            f' action="{escape_xml(action_url)}" method="POST"'
        )
        prompts_xml = "".join(self.say(prompt) for prompt in prompts)
        return f"<Gather {attrs}>{prompts_xml}</Gather>"

    def record(
        self,
        action_url: str,
        transcribe_callback: str,
        max_length: int = 30,
        play_beep: bool = True,
    ) -> str:
        """
        Generate a Record verb with asynchronous transcription.

        Args:
            action_url: URL the platform posts the finished recording to
            transcribe_callback: URL the transcription result is posted to
            max_length: Maximum recording length in seconds
            play_beep: Play a tone before recording starts

        Returns:
            Record XML fragment
        """
        return (
            f'<Record action="{escape_xml(action_url)}" method="POST"'
            f' maxLength="{int(max_length)}" playBeep="{str(play_beep).lower()}"'
            f' transcribe="true" transcribeCallback="{escape_xml(transcribe_callback)}" />'
        )

    def redirect(self, url: str) -> str:
        return f'<Redirect method="POST">{escape_xml(url)}</Redirect>'

    def hangup(self) -> str:
        return "<Hangup/>"

    def document(self, *verbs: str) -> str:
        """Wrap verbs in the Response envelope."""
        return f"{XML_DECLARATION}<Response>{''.join(verbs)}</Response>"

    def statement(self, text: Union[str, Sequence[str]]) -> str:
        """A terminal document: speak and hang up."""
        return self.document(self.say(text), self.hangup())
