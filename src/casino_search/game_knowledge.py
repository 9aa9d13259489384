"""
Static domain tables for query understanding: per-game knowledge, domain
keyword synonyms, stop words and the canned contextual answers.

The tables are hand-curated per supported game. Numbers are percentages
unless the key says otherwise.
"""

from typing import Dict, List, Optional

GAME_KNOWLEDGE = {
    "blackjack": {
        "names": ["blackjack", "black-jack", "veintiuno", "twenty-one", "twenty one", "21"],
        "display": {"es": "Blackjack", "en": "Blackjack"},
        "probability": 0.42,
        "house_edge": 0.5,
        "rtp": 99.5,
        "description": {
            "es": "Juego de cartas donde el objetivo es acercarse a 21 sin pasarse",
            "en": "Card game where the goal is to get as close to 21 as possible without going over",
        },
        "rules": {
            "es": "El jugador recibe 2 cartas y puede pedir más. Las cartas numéricas valen su número, "
                  "las figuras valen 10 y el As vale 1 u 11.",
            "en": "The player receives 2 cards and may draw more. Number cards count their value, "
                  "face cards count 10 and the Ace counts 1 or 11.",
        },
        "best_odds": {"es": "Usar estrategia básica perfecta", "en": "Playing perfect basic strategy"},
        "strategies": {
            "es": [
                "Usa estrategia básica para cada mano según la carta del dealer",
                "Nunca tomes seguro: la ventaja de la casa es 7.4%",
                "Divide siempre ases y ochos",
            ],
            "en": [
                "Use basic strategy for every hand based on the dealer's upcard",
                "Never take insurance: its house edge is 7.4%",
                "Always split aces and eights",
            ],
        },
        "facts": {
            "es": [
                "La ventaja de la casa es aproximadamente 0.5% con estrategia básica perfecta.",
                "Un blackjack natural paga 3:2, o 6:5 en mesas desfavorables.",
            ],
            "en": [
                "The house edge is about 0.5% with perfect basic strategy.",
                "A natural blackjack pays 3:2, or 6:5 on unfavourable tables.",
            ],
        },
    },
    "ruleta": {
        "names": ["ruleta", "roulette", "rueda", "wheel", "rouleta"],
        "display": {"es": "Ruleta", "en": "Roulette"},
        "probability": 0.4865,
        "house_edge": 2.7,
        "rtp": 97.3,
        "description": {
            "es": "Juego de azar con una rueda giratoria y una bola",
            "en": "Game of chance played with a spinning wheel and a ball",
        },
        "rules": {
            "es": "La rueda tiene números del 0 al 36. Puedes apostar a números, colores, "
                  "par o impar, docenas y columnas.",
            "en": "The wheel has numbers from 0 to 36. You can bet on numbers, colours, "
                  "even or odd, dozens and columns.",
        },
        "best_odds": {
            "es": "Apuestas exteriores en ruleta europea (rojo/negro, par/impar)",
            "en": "Outside bets on European roulette (red/black, even/odd)",
        },
        "strategies": {
            "es": [
                "Juega siempre ruleta europea (un cero) en lugar de americana (doble cero)",
                "Apuesta a rojo/negro o par/impar para la mejor probabilidad (48.65%)",
                "Evita el sistema Martingala: requiere un bankroll infinito",
            ],
            "en": [
                "Always play European roulette (single zero) instead of American (double zero)",
                "Bet on red/black or even/odd for the best probability (48.65%)",
                "Avoid the Martingale system: it needs an infinite bankroll",
            ],
        },
        "facts": {
            "es": [
                "La ruleta europea tiene una ventaja de la casa de 2.7% debido al cero.",
                "La ruleta americana tiene una ventaja de la casa de 5.26% debido al doble cero.",
            ],
            "en": [
                "European roulette has a 2.7% house edge because of the zero.",
                "American roulette has a 5.26% house edge because of the double zero.",
            ],
        },
    },
    "poker": {
        "names": ["poker", "poquer", "texas holdem", "hold'em", "omaha", "texas"],
        "display": {"es": "Poker", "en": "Poker"},
        "probability": None,
        "house_edge": 0,
        "rtp": None,
        "description": {
            "es": "Juego de cartas estratégico entre jugadores",
            "en": "Strategic card game played between players",
        },
        "rules": {
            "es": "Cada jugador recibe cartas privadas y hay cartas comunitarias. "
                  "Gana la mejor combinación de 5 cartas.",
            "en": "Each player receives private cards and there are community cards. "
                  "The best 5-card hand wins.",
        },
        "best_odds": {
            "es": "Juego de habilidad: no se juega contra la casa",
            "en": "A game of skill: you do not play against the house",
        },
        "strategies": {
            "es": [
                "Juega tight-aggressive: pocas manos, pero con agresividad",
                "La posición es crucial: actuar último da ventaja",
                "Calcula tus outs y las pot odds antes de decidir",
            ],
            "en": [
                "Play tight-aggressive: few hands, played aggressively",
                "Position is crucial: acting last is an advantage",
                "Count your outs and pot odds before deciding",
            ],
        },
        "facts": {
            "es": [
                "No juegas contra la casa, sino contra otros jugadores.",
                "El rake del casino suele ser del 5-10% del bote.",
            ],
            "en": [
                "You play against other players, not against the house.",
                "The casino rake is usually 5-10% of the pot.",
            ],
        },
    },
    "tragamonedas": {
        "names": ["tragamonedas", "tragaperras", "slot machine", "slots", "slot", "maquina"],
        "display": {"es": "Tragamonedas", "en": "Slots"},
        "probability": None,
        "house_edge": 5,
        "rtp": 95,
        "description": {
            "es": "Máquinas de juego con rodillos y símbolos",
            "en": "Gaming machines with reels and symbols",
        },
        "rules": {
            "es": "Gira los rodillos y gana si los símbolos coinciden en las líneas de pago activas.",
            "en": "Spin the reels and win when symbols line up on an active payline.",
        },
        "best_odds": {
            "es": "Máquinas con RTP alto (97-99%) en casinos online",
            "en": "High-RTP machines (97-99%) in online casinos",
        },
        "strategies": {
            "es": [
                "Busca máquinas con RTP de 96% o más",
                "Los jackpots progresivos tienen un RTP más bajo (88-92%)",
                "Fija un presupuesto y no lo excedas nunca",
            ],
            "en": [
                "Look for machines with 96% RTP or higher",
                "Progressive jackpots have a lower RTP (88-92%)",
                "Set a budget and never exceed it",
            ],
        },
        "facts": {
            "es": [
                "El RTP típico varía entre 85% y 98%.",
                "Cada giro es independiente: no existen máquinas calientes.",
            ],
            "en": [
                "Typical RTP ranges between 85% and 98%.",
                "Every spin is independent: there are no hot machines.",
            ],
        },
    },
    "dados": {
        "names": ["dados", "craps", "dice", "crap", "die"],
        "display": {"es": "Dados (Craps)", "en": "Craps"},
        "probability": 0.493,
        "house_edge": 1.41,
        "rtp": 98.59,
        "description": {
            "es": "Juego con dos dados de seis caras",
            "en": "Game played with two six-sided dice",
        },
        "rules": {
            "es": "El tirador lanza dos dados y se apuesta sobre el resultado de la tirada.",
            "en": "The shooter throws two dice and players bet on the outcome of the roll.",
        },
        "best_odds": {
            "es": "Don't Pass con odds (0.4% de ventaja de la casa)",
            "en": "Don't Pass with odds (0.4% house edge)",
        },
        "strategies": {
            "es": [
                "Apuesta a Pass Line (1.41%) o Don't Pass (1.36%)",
                "Toma siempre las odds: no tienen ventaja de la casa",
                "Evita las apuestas de proposición: llegan al 16.9%",
            ],
            "en": [
                "Bet the Pass Line (1.41%) or Don't Pass (1.36%)",
                "Always take the odds: they carry no house edge",
                "Avoid proposition bets: they reach 16.9%",
            ],
        },
        "facts": {
            "es": [
                "Pass Line tiene una ventaja de la casa de 1.41%.",
                "El 7 es el resultado más probable (16.67%).",
            ],
            "en": [
                "The Pass Line has a 1.41% house edge.",
                "7 is the most likely roll (16.67%).",
            ],
        },
    },
    "baccarat": {
        "names": ["baccarat", "bacara", "punto y banca", "punto banco"],
        "display": {"es": "Baccarat", "en": "Baccarat"},
        "probability": 0.4585,
        "house_edge": 1.06,
        "rtp": 98.94,
        "description": {
            "es": "Juego de cartas entre la banca y el jugador",
            "en": "Card game between the banker and the player",
        },
        "rules": {
            "es": "Se reparten cartas a la banca y al jugador. Gana la mano más cercana a 9.",
            "en": "Cards are dealt to banker and player. The hand closest to 9 wins.",
        },
        "best_odds": {
            "es": "Apostar a la Banca (1.06% de ventaja de la casa)",
            "en": "Betting on the Banker (1.06% house edge)",
        },
        "strategies": {
            "es": [
                "Apuesta siempre a la Banca: menor ventaja de la casa (1.06%)",
                "Nunca apuestes al empate: ventaja de la casa del 14.4%",
                "Ignora las tablas de tendencias: cada mano es independiente",
            ],
            "en": [
                "Always bet on the Banker: lowest house edge (1.06%)",
                "Never bet on the tie: 14.4% house edge",
                "Ignore trend boards: every hand is independent",
            ],
        },
        "facts": {
            "es": [
                "Apostar a la Banca tiene una ventaja de la casa de 1.06%.",
                "Apostar al Jugador tiene una ventaja de la casa de 1.24%.",
            ],
            "en": [
                "Betting on the Banker has a 1.06% house edge.",
                "Betting on the Player has a 1.24% house edge.",
            ],
        },
    },
}

# Canonical domain term -> synonyms. Games reuse their alias lists.
DOMAIN_SYNONYMS: Dict[str, List[str]] = {
    game: [name for name in data["names"] if name != game]
    for game, data in GAME_KNOWLEDGE.items()
}
DOMAIN_SYNONYMS.update({
    "apuesta": ["bet", "apostar", "wager"],
    "probabilidad": ["probability", "odds", "posibilidad"],
    "estrategia": ["strategy", "tactica"],
    "ventaja": ["house edge", "margen"],
    "pago": ["payout", "premio", "rtp"],
    "cartas": ["cards", "naipes", "baraja"],
})

STOP_WORDS = {
    "es": {
        "el", "la", "los", "las", "un", "una", "unos", "unas",
        "de", "del", "al", "en", "para", "por", "con", "sin",
        "sobre", "entre", "desde", "hasta", "hacia",
        "y", "o", "u", "e", "ni", "pero", "sino",
        "que", "cual", "cuales", "como", "cuando", "donde",
        "es", "son", "esta", "estan", "ser", "estar",
        "a", "ante", "bajo", "contra", "durante",
        "mediante", "segun", "tras", "versus", "via",
    },
    "en": {
        "the", "a", "an", "and", "or", "but", "in", "on", "at",
        "to", "for", "of", "with", "by", "from", "as", "is", "are",
        "was", "were", "be", "been", "being", "have", "has", "had",
        "do", "does", "did", "will", "would", "should", "could",
        "may", "might", "must", "can", "about", "into", "through",
        "during", "before", "after", "above", "below", "between",
        "what", "which", "how", "when", "where",
    },
}

# Answers for sub-queries precise enough to deserve their own paragraph
SPECIFIC_ANSWERS = {
    ("redRoulette", "blackRoulette"): {
        "es": "**Ruleta - Rojo/Negro**: La probabilidad de que salga rojo o negro es **48.65%** en ruleta "
              "europea. Hay 18 números rojos, 18 negros y 1 verde (el cero), que da a la casa una ventaja "
              "del **2.7%**. El pago es 1:1. En ruleta americana (doble cero) la probabilidad baja a 47.37% "
              "y la ventaja sube a 5.26%.",
        "en": "**Roulette - Red/Black**: The probability of red or black is **48.65%** on European roulette. "
              "There are 18 red, 18 black and 1 green number (the zero), which gives the house a **2.7%** "
              "edge. The payout is 1:1. On American roulette (double zero) the probability drops to 47.37% "
              "and the edge rises to 5.26%.",
    },
    ("evenRoulette", "oddRoulette"): {
        "es": "**Ruleta - Par/Impar**: La probabilidad de par o impar es **48.65%** en ruleta europea. "
              "El cero no cuenta como par ni impar, lo que da a la casa una ventaja del **2.7%**. Pago: 1:1.",
        "en": "**Roulette - Even/Odd**: The probability of even or odd is **48.65%** on European roulette. "
              "Zero counts as neither, which gives the house a **2.7%** edge. Payout: 1:1.",
    },
    ("numberRoulette",): {
        "es": "**Ruleta - Número pleno**: La probabilidad de acertar un número concreto es **2.7%** (1 entre 37) "
              "en ruleta europea y el pago es **35:1**. La ventaja de la casa sigue siendo 2.7%.",
        "en": "**Roulette - Single number**: The probability of hitting one specific number is **2.7%** "
              "(1 in 37) on European roulette and the payout is **35:1**. The house edge stays at 2.7%.",
    },
    ("insuranceBlackjack",): {
        "es": "**Blackjack - Seguro**: Nunca tomes seguro. Su ventaja de la casa es **7.4%**, muy superior al "
              "0.5% del juego base. Paga 2:1 pero solo gana si el dealer tiene blackjack.",
        "en": "**Blackjack - Insurance**: Never take insurance. Its house edge is **7.4%**, far above the 0.5% "
              "of the base game. It pays 2:1 but only wins when the dealer has blackjack.",
    },
    ("naturalBlackjack",): {
        "es": "**Blackjack - Natural**: La probabilidad de recibir un blackjack natural (As + carta de 10) es "
              "**4.8%**, aproximadamente 1 de cada 21 manos. Paga **3:2** en mesas buenas y 6:5 en las malas.",
        "en": "**Blackjack - Natural**: The probability of a natural blackjack (Ace + 10-value card) is "
              "**4.8%**, roughly 1 in 21 hands. It pays **3:2** on good tables and 6:5 on bad ones.",
    },
    ("bankerBaccarat",): {
        "es": "**Baccarat - Banca**: Apostar a la Banca es la mejor apuesta del baccarat: gana el **45.85%** "
              "de las manos con una ventaja de la casa de solo **1.06%**, incluso con la comisión del 5%.",
        "en": "**Baccarat - Banker**: Betting on the Banker is the best bet in baccarat: it wins **45.85%** of "
              "hands with a house edge of only **1.06%**, even after the 5% commission.",
    },
    ("tieBaccarat",): {
        "es": "**Baccarat - Empate**: Nunca apuestes al empate. Paga 8:1 pero su probabilidad es solo "
              "**9.5%** y la ventaja de la casa es **14.4%**.",
        "en": "**Baccarat - Tie**: Never bet on the tie. It pays 8:1 but its probability is only **9.5%** "
              "and the house edge is **14.4%**.",
    },
}


def display_name(game: str, language: str) -> str:
    data = GAME_KNOWLEDGE.get(game)
    if not data:
        return game
    return data["display"].get(language, data["display"]["es"])


def _specific_answer(specific_query: str, language: str) -> Optional[str]:
    for keys, answers in SPECIFIC_ANSWERS.items():
        if specific_query in keys:
            return answers[language]
    return None


def _probability_answer(game, name, knowledge, language):
    fact = knowledge["facts"][language][0]
    if knowledge["probability"] is None:
        if language == "es":
            return f"**{name}**: La probabilidad es variable y depende de tu habilidad y estrategia. {fact}"
        return f"**{name}**: The probability is variable and depends on your skill and strategy. {fact}"

    percentage = f"{knowledge['probability'] * 100:.1f}"
    if language == "es":
        return (f"**{name}**: La probabilidad de ganar es aproximadamente **{percentage}%**. "
                f"La ventaja de la casa es **{knowledge['house_edge']}%** y el RTP es "
                f"**{knowledge['rtp']}%**. {fact}")
    return (f"**{name}**: The winning probability is approximately **{percentage}%**. "
            f"The house edge is **{knowledge['house_edge']}%** and the RTP is **{knowledge['rtp']}%**. {fact}")


def _strategy_answer(game, name, knowledge, language):
    strategies = ". ".join(knowledge["strategies"][language])
    best = knowledge["best_odds"][language]
    if language == "es":
        return f"**Estrategia {name}**: {strategies}. La mejor apuesta: {best}."
    return f"**{name} Strategy**: {strategies}. Best bet: {best}."


def _payout_answer(game, name, knowledge, language):
    facts = knowledge["facts"][language]
    fact = facts[1] if len(facts) > 1 else facts[0]
    rtp = knowledge["rtp"] if knowledge["rtp"] is not None else "variable"
    if language == "es":
        return (f"**{name}**: RTP promedio: **{rtp}%**. Ventaja de la casa: "
                f"**{knowledge['house_edge']}%**. {fact}")
    return f"**{name}**: Average RTP: **{rtp}%**. House edge: **{knowledge['house_edge']}%**. {fact}"


def _rules_answer(game, name, knowledge, language):
    return f"**{name}**: {knowledge['description'][language]}. {knowledge['rules'][language]}"


def _comparison_answer(game, name, knowledge, language):
    ranked = sorted(GAME_KNOWLEDGE.items(), key=lambda item: item[1]["house_edge"])
    best = ", ".join(
        f"{display_name(g, language)} ({k['house_edge']}%)" for g, k in ranked[:3]
    )
    if language == "es":
        return (f"**{name}** tiene una ventaja de la casa del **{knowledge['house_edge']}%**. "
                f"Los juegos con mejor probabilidad son: {best}. Menor ventaja = mejores odds.")
    return (f"**{name}** has a house edge of **{knowledge['house_edge']}%**. "
            f"Best games by probability: {best}. Lower edge = better odds.")


def _general_answer(game, name, knowledge, language):
    rtp = knowledge["rtp"] if knowledge["rtp"] is not None else "variable"
    fact = knowledge["facts"][language][0]
    if language == "es":
        return (f"**{name}**: {knowledge['description']['es']}. RTP: {rtp}%, "
                f"ventaja de la casa: {knowledge['house_edge']}%. {fact}")
    return (f"**{name}**: {knowledge['description']['en']}. RTP: {rtp}%, "
            f"house edge: {knowledge['house_edge']}%. {fact}")


_INTENT_TEMPLATES = {
    "probability": _probability_answer,
    "strategy": _strategy_answer,
    "payout": _payout_answer,
    "houseEdge": _payout_answer,
    "rules": _rules_answer,
    "comparison": _comparison_answer,
}


def generate_answer(game: Optional[str], intent: str, specific_query: Optional[str],
                    language: str) -> Optional[str]:
    """Pick the answer template family for (game, intent, sub-query)."""
    language = language if language in ("es", "en") else "es"

    if specific_query:
        answer = _specific_answer(specific_query, language)
        if answer:
            return answer

    if not game or game not in GAME_KNOWLEDGE:
        return None

    knowledge = GAME_KNOWLEDGE[game]
    name = display_name(game, language)
    template = _INTENT_TEMPLATES.get(intent, _general_answer)
    return template(game, name, knowledge, language)
