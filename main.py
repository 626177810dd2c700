from flask import Flask, request, jsonify
from flask_cors import CORS
from royalty_engine import calculate_from_dict, generate_from_dict
from royalty_engine.config import EngineConfig
from royalty_engine.exceptions import RoyaltyEngineError
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes
CORS(app)

config = EngineConfig.from_env()


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Royalty Statement Engine API",
        "version": "1.0",
        "endpoints": {
            "preview": "/statements/preview [POST]",
            "generate": "/statements/generate [POST]",
            "calculate": "/statements/calculate [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


def _run(handler):
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        return jsonify(handler(input_data)), 200

    except RoyaltyEngineError as e:
        # Fatal statement errors (contract missing, ledger unavailable, ...)
        logger.error(f"Statement error [{e.code}]: {str(e)}")
        status = 400 if isinstance(e, ValueError) else 422
        return jsonify({
            "error": str(e),
            "code": e.code,
            "status": "validation_failed" if status == 400 else "failed"
        }), status

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/statements/preview", methods=["POST"])
def preview_statements():
    """Preview a batch: same calculation as generation, nothing persisted"""
    def handler(data):
        logger.info(f"Previewing statements for {len(data.get('author_ids', []))} authors")
        return generate_from_dict(data, preview=True, config=config)
    return _run(handler)


@app.route("/statements/generate", methods=["POST"])
def generate_statements():
    """Generate final statements for a batch of authors"""
    def handler(data):
        logger.info(f"Generating statements for {len(data.get('author_ids', []))} authors")
        return generate_from_dict(data, preview=False, config=config)
    return _run(handler)


@app.route("/statements/calculate", methods=["POST"])
def calculate_statement():
    """Calculate a single author's statement"""
    def handler(data):
        logger.info(f"Calculating statement for author: {data.get('author_id', 'Unknown')}")
        return calculate_from_dict(data, config=config)
    return _run(handler)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
