from feedbell.bot.bot import run

run()
