import discord
import requests
import logging
from discord.ext import commands
from cryptoagent.config.settings import BACKEND_URL, DISCORD_BOT_TOKEN, LOG_LEVEL

# Set up logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

DISCORD_MESSAGE_LIMIT = 2000

HELP_MESSAGE = """
**Available Commands:**

`!ask <question>` - Ask the AI agent anything
`!price <symbol>` - Get current price of a cryptocurrency (e.g., `!price BTC`)
`!connect` - Connect and authenticate your Ethereum wallet
`!history` - Show this session's conversation
`!market` - Top coins by market cap and top gainers
`!commands` - Show this message

You can also mention me or DM me, e.g. "What's the price of ETH?"
"""

intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix="!", intents=intents)


def ask_backend(prompt: str) -> str:
    """Submit a query to the backend and return the text to show"""
    response = requests.post(f"{BACKEND_URL}/query", json={"prompt": prompt})
    data = response.json()
    if "error" in data:
        return f"❌ Error: {data['error']}"
    return data["response"] or "(empty answer)"


def render_history(messages) -> str:
    if not messages:
        return "No messages yet."
    lines = []
    for message in messages:
        speaker = "You" if message["sender"] == "user" else "Agent"
        lines.append(f"**{speaker}:** {message['text']}")
    return "\n".join(lines)


def render_market(market) -> str:
    lines = ["**Market Overview:**"]
    for coin in market.get("markets", []):
        lines.append(f"{coin.get('name')}: ${coin.get('current_price')} ({coin.get('price_change_percentage_24h')}%)")
    lines.append("")
    lines.append("**Top Gainers (24h):**")
    for coin in market.get("top_gainers", []):
        lines.append(f"{coin.get('name')}: ${coin.get('current_price')} ({coin.get('price_change_percentage_24h')}%)")
    return "\n".join(lines)


def truncate(text: str) -> str:
    return text[:DISCORD_MESSAGE_LIMIT]


@bot.event
async def on_ready():
    logger.info(f"Agent is online as {bot.user}")


@bot.event
async def on_message(message):
    if message.author == bot.user:
        return

    if message.content.startswith('!'):
        await bot.process_commands(message)
        return

    # Handle natural language if mentioned or in DM
    if bot.user.mentioned_in(message) or isinstance(message.channel, discord.DMChannel):
        content = message.content.replace(bot.user.mention, "").strip()
        if content.lower() in ['help', 'commands', '?']:
            await message.channel.send(HELP_MESSAGE)
            return

        await message.channel.send("Thinking...")
        try:
            await message.channel.send(truncate(ask_backend(content)))
        except Exception as e:
            logger.error(f"Error processing message: {e}")
            await message.channel.send("Something went wrong. 😞")


@bot.command(name="ask")
async def ask(ctx, *, question: str):
    """Ask the AI agent"""
    try:
        await ctx.send(truncate(ask_backend(question)))
    except Exception as e:
        logger.error(f"Error in ask command: {e}")
        await ctx.send(f"❌ Error: {str(e)}")


@bot.command(name="price")
async def price(ctx, symbol: str):
    """Get current price of a cryptocurrency"""
    try:
        await ctx.send(ask_backend(f"price of {symbol}"))
    except Exception as e:
        logger.error(f"Error in price command: {e}")
        await ctx.send(f"❌ Error: {str(e)}")


@bot.command(name="connect")
async def connect(ctx):
    """Connect the wallet"""
    try:
        await ctx.send(ask_backend("connect"))
    except Exception as e:
        logger.error(f"Error in connect command: {e}")
        await ctx.send(f"❌ Error: {str(e)}")


@bot.command(name="history")
async def history(ctx):
    """Show the conversation so far"""
    try:
        data = requests.get(f"{BACKEND_URL}/history").json()
        await ctx.send(truncate(render_history(data["messages"])))
    except Exception as e:
        logger.error(f"Error in history command: {e}")
        await ctx.send(f"❌ Error: {str(e)}")


@bot.command(name="market")
async def market(ctx):
    """Check current market status"""
    try:
        data = requests.get(f"{BACKEND_URL}/dashboard").json()
        await ctx.send(truncate(render_market(data["market"])))
    except Exception as e:
        logger.error(f"Error in market command: {e}")
        await ctx.send(f"❌ Error: {str(e)}")


@bot.command(name="commands")
async def show_commands(ctx):
    """Show available commands"""
    await ctx.send(HELP_MESSAGE)


if __name__ == "__main__":
    try:
        bot.run(DISCORD_BOT_TOKEN)
    except Exception as e:
        logger.error(f"Error starting Discord bot: {e}")
