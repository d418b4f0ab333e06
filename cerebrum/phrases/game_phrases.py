"""
Host phrase catalog.

Every line the host can speak outside of clue text is listed here with a
stable id. Phrases that combine with a player name (spoken before or after
the phrase) can only be synthesized at play time; all others are fixed text
and can be generated ahead of time and bundled.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class PhraseCategory(Enum):
    """Moment of the game a phrase belongs to."""

    BUZZ_IN = "buzz_in"
    CORRECT = "correct"
    ANYONE_ELSE = "anyone_else"
    INCORRECT = "incorrect"
    SELECT_CATEGORY = "select_category"
    SELECT_CATEGORY_FIRST = "select_category_first"
    TIMEOUT = "timeout"
    REVEAL_ANSWER = "reveal_answer"
    DAILY_DOUBLE = "daily_double"
    FINAL_JEOPARDY = "final_jeopardy"
    GAME_FLOW = "game_flow"


@dataclass(frozen=True)
class Phrase:
    """
    One catalog entry.

    Attributes:
        id: Stable identifier, also used as the audio file stem
        text: Text to synthesize
        category: Game moment the phrase is used in
        name_prefix: Player name is spoken before the phrase
        name_suffix: Player name is spoken after the phrase
    """

    id: str
    text: str
    category: PhraseCategory
    name_prefix: bool = False
    name_suffix: bool = False

    @property
    def is_bundleable(self) -> bool:
        return not self.name_prefix and not self.name_suffix


_C = PhraseCategory

ALL_PHRASES: List[Phrase] = [
    # Buzz-in acknowledgment, after the player's name
    Phrase("buzz_yes_1", "Yes?", _C.BUZZ_IN, name_prefix=True),
    Phrase("buzz_yes_2", "Go ahead.", _C.BUZZ_IN, name_prefix=True),
    Phrase("buzz_go", "Go.", _C.BUZZ_IN, name_prefix=True),
    # Correct answer
    Phrase("correct_1", "Correct!", _C.CORRECT, name_suffix=True),
    Phrase("correct_2", "That's right!", _C.CORRECT, name_suffix=True),
    Phrase("correct_3", "Yes!", _C.CORRECT, name_suffix=True),
    Phrase("correct_4", "Absolutely!", _C.CORRECT, name_suffix=True),
    Phrase("correct_5", "You got it!", _C.CORRECT),
    Phrase("correct_6", "Well done!", _C.CORRECT),
    Phrase("correct_7", "Right you are!", _C.CORRECT),
    Phrase("correct_8", "Nicely done!", _C.CORRECT),
    Phrase("correct_9", "That is correct!", _C.CORRECT),
    Phrase("correct_10", "Excellent!", _C.CORRECT),
    # Others may buzz after a wrong answer
    Phrase("anyone_1", "Anyone else?", _C.ANYONE_ELSE),
    Phrase("anyone_2", "Anyone?", _C.ANYONE_ELSE),
    Phrase("anyone_3", "Anybody?", _C.ANYONE_ELSE),
    # Incorrect answer
    Phrase("wrong_1", "No.", _C.INCORRECT),
    Phrase("wrong_2", "Sorry, no.", _C.INCORRECT),
    Phrase("wrong_3", "I'm afraid not.", _C.INCORRECT),
    Phrase("wrong_4", "Ooh, no.", _C.INCORRECT),
    Phrase("wrong_5", "Not quite.", _C.INCORRECT),
    Phrase("wrong_6", "Incorrect.", _C.INCORRECT),
    Phrase("wrong_7", "No, sorry.", _C.INCORRECT),
    Phrase("wrong_8", "That's not it.", _C.INCORRECT),
    Phrase("wrong_9", "Nope.", _C.INCORRECT),
    Phrase("wrong_10", "Ooh, sorry.", _C.INCORRECT),
    # Category selection prompt
    Phrase("pick_1", "Your pick.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_2", "Where to next?", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_3", "You have control of the board.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_4", "Select a category.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_5", "Your choice.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_6", "Pick a clue.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_7", "Back to you.", _C.SELECT_CATEGORY, name_prefix=True),
    Phrase("pick_8", "You're in control.", _C.SELECT_CATEGORY, name_prefix=True),
    # Nobody buzzed
    Phrase("timeout_1", "Time's up.", _C.TIMEOUT),
    Phrase("timeout_2", "Nobody?", _C.TIMEOUT),
    Phrase("timeout_3", "Time.", _C.TIMEOUT),
    Phrase("timeout_4", "Moving on.", _C.TIMEOUT),
    Phrase("timeout_5", "Let's move on.", _C.TIMEOUT),
    # Lead-in to the correct response, which is spoken separately
    Phrase("reveal_1", "The correct response was", _C.REVEAL_ANSWER),
    Phrase("reveal_2", "We were looking for", _C.REVEAL_ANSWER),
    Phrase("reveal_3", "The answer is", _C.REVEAL_ANSWER),
    # Daily double
    Phrase("dd_announce", "Daily Double!", _C.DAILY_DOUBLE),
    Phrase("dd_wager_1", "How much would you like to wager?", _C.DAILY_DOUBLE, name_prefix=True),
    Phrase("dd_wager_2", "What's your wager?", _C.DAILY_DOUBLE, name_prefix=True),
    Phrase("dd_wager_3", "Name your wager.", _C.DAILY_DOUBLE, name_prefix=True),
    Phrase("dd_allin", "A true Daily Double!", _C.DAILY_DOUBLE),
    # Final round
    Phrase("fj_announce", "Time for Final Jeopardy.", _C.FINAL_JEOPARDY),
    Phrase("fj_category", "The category is", _C.FINAL_JEOPARDY),
    Phrase("fj_wagers", "Players, make your wagers.", _C.FINAL_JEOPARDY),
    Phrase("fj_clue", "Here is your clue.", _C.FINAL_JEOPARDY),
    Phrase("fj_time", "You have 30 seconds. Good luck.", _C.FINAL_JEOPARDY),
    Phrase("fj_reveal", "Let's see what you wrote.", _C.FINAL_JEOPARDY),
    Phrase("fj_start_1", "Let's reveal your answers, starting with", _C.FINAL_JEOPARDY),
    # Rounds
    Phrase("round_end_j", "That's the end of the Jeopardy round.", _C.GAME_FLOW),
    Phrase("round_start_dj", "Let's move on to Double Jeopardy.", _C.GAME_FLOW),
    Phrase("round_intro_dj", "This is Double Jeopardy, where the values are doubled.", _C.GAME_FLOW),
    Phrase("game_over", "That's the game!", _C.GAME_FLOW),
    Phrase("thanks", "Thanks for playing.", _C.GAME_FLOW),
    Phrase("good_game", "Great game, everyone.", _C.GAME_FLOW),
    Phrase("lets_begin", "Let's play Jeopardy!", _C.GAME_FLOW),
    Phrase("intro_welcome", "Welcome to Jeopardy.", _C.GAME_FLOW),
    Phrase("todays_categories", "Today's categories are...", _C.GAME_FLOW),
    # Startup and loading
    Phrase("welcome_cerebrum", "Welcome to Cerebrum.", _C.GAME_FLOW),
    Phrase("welcome_cerebrum_2", "Welcome to Cerebrum! The trivia game for everyone.", _C.GAME_FLOW),
    Phrase("loading_moment", "Just a moment while the game loads.", _C.GAME_FLOW),
    Phrase("loading_preparing", "Preparing your game.", _C.GAME_FLOW),
    Phrase("loading_almost", "Almost ready.", _C.GAME_FLOW),
    Phrase("loading_done", "All set! Let's play.", _C.GAME_FLOW),
    Phrase("ok_start", "Okay, let's start the game.", _C.GAME_FLOW),
    Phrase("ready_play", "Ready to play?", _C.GAME_FLOW),
    Phrase("here_we_go", "Here we go!", _C.GAME_FLOW),
    Phrase("good_luck", "Good luck, everyone!", _C.GAME_FLOW),
    Phrase("good_luck_2", "Good luck to all our players.", _C.GAME_FLOW),
    # First pick of the game
    Phrase("first_pick", "You get to pick the first category.", _C.SELECT_CATEGORY_FIRST, name_prefix=True),
    Phrase("first_pick_2", "You have first pick.", _C.SELECT_CATEGORY_FIRST, name_prefix=True),
    Phrase("start_us_off", "Start us off.", _C.SELECT_CATEGORY_FIRST, name_prefix=True),
    Phrase("pick_first", "Pick the first category.", _C.SELECT_CATEGORY_FIRST, name_prefix=True),
    # Instructions
    Phrase("instr_buzz", "Buzz in when you know the answer.", _C.GAME_FLOW),
    Phrase("instr_question", "Remember to phrase your response in the form of a question.", _C.GAME_FLOW),
    Phrase("instr_speak", "Speak your answer clearly.", _C.GAME_FLOW),
    # Transitions
    Phrase("next_clue", "Next clue.", _C.GAME_FLOW),
    Phrase("moving_on", "Moving on.", _C.GAME_FLOW),
    Phrase("lets_continue", "Let's continue.", _C.GAME_FLOW),
    Phrase("back_to_board", "Back to the board.", _C.GAME_FLOW),
    # Scores
    Phrase("check_scores", "Let's check the scores.", _C.GAME_FLOW),
    Phrase("current_scores", "Here are the current scores.", _C.GAME_FLOW),
    Phrase("close_game", "It's a close game!", _C.GAME_FLOW),
    Phrase("anyone_win", "Anyone could win this.", _C.GAME_FLOW),
    # Winner
    Phrase("winner_is", "And our winner is", _C.GAME_FLOW, name_suffix=True),
    Phrase("congratulations", "Congratulations!", _C.GAME_FLOW),
    Phrase("new_champion", "We have a new champion!", _C.GAME_FLOW),
    Phrase("well_played", "Well played, everyone.", _C.GAME_FLOW),
    # Early buzz
    Phrase("too_early", "Too early!", _C.GAME_FLOW),
    Phrase("wait_for_it", "Wait for it.", _C.GAME_FLOW),
    Phrase("not_yet", "Not yet!", _C.GAME_FLOW),
    Phrase("hold_on", "Hold on.", _C.GAME_FLOW),
    # Pause
    Phrase("game_paused", "Game paused.", _C.GAME_FLOW),
    Phrase("resuming", "Resuming the game.", _C.GAME_FLOW),
]

_BY_ID = {phrase.id: phrase for phrase in ALL_PHRASES}


def get_by_id(phrase_id: str) -> Optional[Phrase]:
    return _BY_ID.get(phrase_id)


def get_by_category(category: PhraseCategory) -> List[Phrase]:
    return [phrase for phrase in ALL_PHRASES if phrase.category == category]


def get_bundleable_phrases() -> List[Phrase]:
    """Phrases with fixed text that can be synthesized ahead of time."""
    return [phrase for phrase in ALL_PHRASES if phrase.is_bundleable]


def get_runtime_phrases() -> List[Phrase]:
    """Phrases combined with a player name at play time."""
    return [phrase for phrase in ALL_PHRASES if not phrase.is_bundleable]


def total_count() -> int:
    return len(ALL_PHRASES)


def bundleable_count() -> int:
    return len(get_bundleable_phrases())
