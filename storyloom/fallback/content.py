"""Pre-authored fallback content, loaded once at import time.

Entries are plain dicts validated into FallbackContent so the data reads the
way it would in a JSON preset file.
"""

from __future__ import annotations

from storyloom.models import FallbackContent

_FANTASY: list[dict] = [
    # Initial scenes
    {
        "id": "fantasy-init-1",
        "type": "initial",
        "themes": ["fantasy"],
        "tags": ["beginning", "kingdom"],
        "content": (
            "Your adventure begins in the ancient kingdom of Eldoria, where magic flows "
            "through the very air and mythical creatures roam the wild lands beyond the "
            "city walls. You stand at the gates of the capital, ready to forge your destiny."
        ),
        "choices": [
            {"text": "Enter the bustling marketplace",
             "outcome": "You make your way into the crowded marketplace, where merchants hawk exotic wares.",
             "tags": ["marketplace", "city"]},
            {"text": "Visit the royal castle",
             "outcome": "You approach the towering castle, its white stone walls gleaming in the sunlight.",
             "tags": ["castle", "royal"]},
            {"text": "Head to the tavern",
             "outcome": "You push open the heavy wooden door of the tavern and are met by warmth and laughter.",
             "tags": ["tavern", "social"]},
        ],
    },
    {
        "id": "fantasy-init-2",
        "type": "initial",
        "themes": ["fantasy", "adventure"],
        "tags": ["beginning", "quest"],
        "content": (
            "The village elder has summoned you with urgent news. Dark forces stir in the "
            "northern mountains, and the old prophecy speaks of a hero who will rise to face "
            "them. As you stand before the elder, you feel the weight of destiny settle on you."
        ),
        "choices": [
            {"text": "Accept the quest immediately",
             "outcome": "You nod, accepting the burden. The elder's eyes shine with hope.",
             "tags": ["quest_accepted", "eager"]},
            {"text": "Ask for more information",
             "outcome": "You ask for details about these dark forces and the prophecy that names you.",
             "tags": ["cautious", "information"]},
            {"text": "Request time to prepare",
             "outcome": "You ask for time to gather supplies and allies before setting out.",
             "tags": ["preparation", "practical"]},
        ],
    },
    # Forest
    {
        "id": "fantasy-forest-1",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["forest", "day", "peaceful"],
        "content": (
            "The forest path winds between ancient oaks, their branches forming a green canopy "
            "overhead. Shafts of golden sunlight pierce the leaves, pooling warmth on the mossy "
            "ground. Birds sing their afternoon songs and the breeze smells of wildflowers."
        ),
    },
    {
        "id": "fantasy-forest-2",
        "type": "scene",
        "themes": ["fantasy", "adventure"],
        "tags": ["forest", "mysterious"],
        "content": (
            "The forest grows darker as you venture deeper. Strange symbols are carved into the "
            "bark, and you could swear you hear whispers in a language you do not know. The path "
            "ahead splits in two."
        ),
        "choices": [
            {"text": "Follow the left path toward the whispers",
             "outcome": "You turn left, drawn by the whispers deeper into the shadows.",
             "tags": ["left_path", "mysterious"]},
            {"text": "Take the right path toward a clearing",
             "outcome": "You choose the right path, toward a bright clearing between the trees.",
             "tags": ["right_path", "clearing"]},
        ],
        "weight": 2,
    },
    {
        "id": "fantasy-forest-night",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["forest", "night", "atmospheric"],
        "content": (
            "Night has fallen in the forest, turning familiar paths into a maze of shadow and "
            "moonlight. Glowing fungi give off an eerie light and unseen creatures rustle in the "
            "undergrowth. You must decide whether to make camp or press on."
        ),
        "choices": [
            {"text": "Make camp for the night",
             "outcome": "You find a clearing and gather wood for a fire.",
             "tags": ["camp", "rest"]},
            {"text": "Press on through the night",
             "outcome": "You light a torch and keep moving despite the dark.",
             "tags": ["night_travel", "determined"]},
        ],
    },
    # Combat
    {
        "id": "fantasy-combat-1",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["combat", "forest", "creature"],
        "content": (
            "A snarl breaks the forest's peace as a dire wolf emerges from the undergrowth, red "
            "eyes fixed on you. The massive beast circles slowly, muscles tensed to spring. You "
            "must act quickly!"
        ),
        "requirements": {"include_tags": ["forest"], "min_segments": 2},
        "choices": [
            {"text": "Draw your weapon and fight",
             "outcome": "You draw your weapon in one smooth motion and face the beast.",
             "tags": ["combat", "brave"]},
            {"text": "Try to intimidate the wolf",
             "outcome": "You stand tall and roar, trying to frighten the wolf away.",
             "tags": ["intimidation", "clever"]},
            {"text": "Slowly back away",
             "outcome": "You retreat carefully, holding its gaze while looking for a way out.",
             "tags": ["retreat", "cautious"]},
        ],
    },
    {
        "id": "fantasy-combat-night",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["combat", "night"],
        "content": (
            "In the darkness, combat becomes even more dangerous. Every shadow could hide an "
            "enemy, every sound could signal an attack."
        ),
    },
    # Transitions
    {
        "id": "fantasy-transition-1",
        "type": "transition",
        "themes": ["fantasy"],
        "tags": ["travel", "mountain"],
        "content": (
            "Days pass as you journey toward the mountains. Rolling hills give way to rocky "
            "terrain and the air grows thin and cold. What waits for you there remains uncertain."
        ),
    },
    {
        "id": "fantasy-transition-2",
        "type": "transition",
        "themes": ["fantasy"],
        "tags": ["travel", "river"],
        "content": (
            "Following the river has proven wise: fresh water and fish have sustained you. As you "
            "round a bend, smoke rises in the distance, a sign of people ahead."
        ),
    },
    # City and tavern
    {
        "id": "fantasy-city-market",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["city", "marketplace", "social"],
        "content": (
            "The marketplace buzzes with activity. Merchants call out their wares, from common "
            "vegetables to potions that glow with an inner light. A crowd has gathered around a "
            "performer juggling balls of coloured fire."
        ),
        "requirements": {"include_tags": ["city"]},
        "choices": [
            {"text": "Browse the potion stall",
             "outcome": "You approach the alchemist's stall and its rows of bottles.",
             "tags": ["shopping", "potions"]},
            {"text": "Watch the fire juggler",
             "outcome": "You join the crowd, mesmerized by the dancing flames.",
             "tags": ["entertainment", "magic"]},
            {"text": "Look for information",
             "outcome": "You move through the crowd, listening for gossip about your quest.",
             "tags": ["information", "social"]},
        ],
    },
    {
        "id": "fantasy-tavern-1",
        "type": "scene",
        "themes": ["fantasy"],
        "tags": ["tavern", "social", "evening"],
        "content": (
            "The tavern is warm after your travels. Weathered merchants, hooded figures and "
            "boisterous adventurers fill the common room. The barkeeper, a stout dwarf with an "
            "impressive beard, nods at your entrance."
        ),
        "requirements": {"include_tags": ["tavern"]},
        "choices": [
            {"text": "Order a meal and drink",
             "outcome": "You settle at the bar and order the house special.",
             "tags": ["rest", "meal"]},
            {"text": "Listen for useful information",
             "outcome": "You nurse a drink in a corner and listen to the talk around you.",
             "tags": ["information", "stealth"]},
            {"text": "Join the adventurers' table",
             "outcome": "You approach the adventurers, hoping to find allies.",
             "tags": ["social", "allies"]},
        ],
    },
    # Choice units
    {
        "id": "fantasy-choice-crossroads",
        "type": "choice",
        "themes": ["fantasy"],
        "tags": ["forest", "travel"],
        "content": "A weathered signpost marks a crossroads. Which way will you go?",
        "choices": [
            {"text": "Take the road north",
             "outcome": "You head north, where the trees thin toward the hills.",
             "tags": ["travel", "mountain"]},
            {"text": "Follow the river east",
             "outcome": "You follow the sound of water eastward.",
             "tags": ["travel", "river"]},
            {"text": "Rest beneath the signpost",
             "outcome": "You sit and rest, watching the roads for travellers.",
             "tags": ["rest"]},
        ],
    },
    {
        "id": "fantasy-choice-stranger",
        "type": "choice",
        "themes": ["fantasy"],
        "tags": ["social", "mysterious"],
        "content": "A cloaked stranger steps into your path and waits for you to speak.",
        "choices": [
            {"text": "Greet the stranger",
             "outcome": "You offer a greeting; the stranger inclines their head.",
             "tags": ["social"]},
            {"text": "Keep your hand on your weapon",
             "outcome": "You rest a hand on your weapon and wait.",
             "tags": ["cautious"]},
        ],
        "requirements": {"exclude_tags": ["combat"]},
    },
]

_SCIFI: list[dict] = [
    {
        "id": "scifi-init-1",
        "type": "initial",
        "themes": ["scifi"],
        "tags": ["beginning", "station"],
        "content": (
            "You wake in the medical bay of the orbital station Meridian, alarms pulsing a dull "
            "amber. The last thing you remember is the docking sequence. Through the viewport the "
            "gas giant below turns slowly, indifferent to whatever has gone wrong."
        ),
        "choices": [
            {"text": "Check the station logs",
             "outcome": "You pull up the logs on the nearest terminal.",
             "tags": ["terminal", "information"]},
            {"text": "Find the rest of the crew",
             "outcome": "You step into the corridor and call out for the crew.",
             "tags": ["crew", "social"]},
        ],
    },
    {
        "id": "scifi-corridor-1",
        "type": "scene",
        "themes": ["scifi"],
        "tags": ["station", "corridor", "tense"],
        "content": (
            "The corridor lights flicker in a stuttering rhythm. Somewhere ahead a bulkhead door "
            "cycles open and shut, open and shut, its motor whining."
        ),
    },
    {
        "id": "scifi-transition-1",
        "type": "transition",
        "themes": ["scifi"],
        "tags": ["travel", "shuttle"],
        "content": (
            "The shuttle drifts across the void for hours. Stars wheel past the canopy while the "
            "navigation computer recalculates, again and again, the shortest way home."
        ),
    },
]

_HORROR: list[dict] = [
    {
        "id": "horror-init-1",
        "type": "initial",
        "themes": ["horror"],
        "tags": ["beginning", "house"],
        "content": (
            "The letter said the house would be empty. Yet as you turn the key in the rusted lock, "
            "you hear footsteps cross the floor above, slow and deliberate, and then stop directly "
            "over your head."
        ),
    },
    {
        "id": "horror-cellar-1",
        "type": "scene",
        "themes": ["horror"],
        "tags": ["house", "cellar", "dark"],
        "content": (
            "The cellar stairs groan under your weight. Your light catches rows of jars on the "
            "shelves, and something in them that turns to follow the beam."
        ),
        "requirements": {"min_segments": 1},
    },
]

FALLBACK_CONTENT: list[FallbackContent] = [
    FallbackContent.model_validate(item) for item in (*_FANTASY, *_SCIFI, *_HORROR)
]
