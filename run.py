import os

from best6 import create_app, db
from best6.models import LeaderboardRow, LeagueMemberRow, LeagueRow, PredictionRow, Profile, RoundRow

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Profile": Profile,
        "PredictionRow": PredictionRow,
        "RoundRow": RoundRow,
        "LeagueRow": LeagueRow,
        "LeagueMemberRow": LeagueMemberRow,
        "LeaderboardRow": LeaderboardRow,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=app.debug)
