import argparse
import json

from loguru import logger

from app.db import init_db, session_scope
from app.errors import PredictPoolError
from app.services.settlement_service import SettlementService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manually resolve a prediction and pay out its pool")
    parser.add_argument("prediction_id", help="Prediction to resolve (active or locked)")
    parser.add_argument("winning_option", help="Option that won; must be one of the prediction's options")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    init_db()

    try:
        with session_scope() as session:
            result = SettlementService(session).distribute_winnings(
                args.prediction_id, args.winning_option
            )
    except PredictPoolError as exc:
        logger.error("Manual resolution of {} failed: {}", args.prediction_id, exc)
        return 1

    print(json.dumps(result.to_dict(), default=str, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
