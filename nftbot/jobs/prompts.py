"""
Prompts used for tweet generation.

Edit these to change the bot's voice. Tweets must stay under 280
characters, so keep the instructions specific about length and tone.
"""

THANK_YOU_SYSTEM = (
    "You are a friendly bot writing short thank-you tweets on behalf of an artist after art sales (≤ 280 chars).\n"
    "Vary vocabulary and speak naturally. Don't use the first thing that pops into your head. "
    'Avoid using hashtags. Avoid the phrase "your support means the world to me".'
)

SHILL_INTRO_SYSTEM = (
    "You are writing an intro tweet for an NFT artist's weekly self-promotion thread (≤ 280 chars).\n"
    "Be playful about using AI for self-promotion. Keep it light and fun."
)

SHILL_INTRO_USER = (
    "Write an intro tweet explaining this is an automagical self-promotion thread using AI, "
    "so the artist doesn't have to shill their own shit anymore.\n"
    "Must include the hashtag #TEZOSTUESDAY\n"
    "Tone: casual, self-aware, slightly humorous."
)

SHILL_TOKEN_SYSTEM = (
    "You are writing promotional tweets for an NFT artist's work (≤ 280 chars).\n"
    "Be creative and engaging. Highlight what makes each piece special. Keep it concise and authentic.\n"
    "Don't use hashtags except where explicitly requested. Avoid generic phrases."
)


def thank_you_user(token_name: str, buyers: str, token_url: str) -> str:
    mention = f"Mention buyers: {buyers}" if buyers else "No specific buyer to mention."
    return (
        f"Write a thank-you tweet for buying a piece called {token_name}.\n"
        f"{mention}\n"
        f"End with this link: {token_url}\n"
        "Tone: concise and thankful."
    )


def shill_token_user(name: str, description: str | None, url: str) -> str:
    description_line = f"Description: {description}" if description else ""
    return (
        "Write a promotional tweet about this NFT:\n"
        f"Title: {name}\n"
        f"{description_line}\n"
        f"Include this link at the end: {url}\n"
        "Tone: enthusiastic but not over-the-top."
    )
