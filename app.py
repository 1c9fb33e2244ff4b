import logging
import os

from flask import Flask, jsonify, request

from safeguard_model_backend.format_data_for_safeguard_plots import extract_plot_data, sanitize_for_json
from safeguard_model_backend.safeguard_model import evaluate
from safeguard_model_backend.safeguard_model_parameters import (
    SafeguardModelParameters,
    ValidationError,
    load_parameters_from_yaml,
)
from safeguard_model_backend.sensitivity import sweep_parameter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Optional YAML file of parameter overrides applied on top of the dataclass defaults
PARAMETERS_FILE_ENV_VAR = 'SAFEGUARD_MODEL_PARAMETERS'
MAX_SWEEP_VALUES = 200


def load_default_parameters() -> SafeguardModelParameters:
    path = os.environ.get(PARAMETERS_FILE_ENV_VAR)
    if path:
        return load_parameters_from_yaml(path)
    return SafeguardModelParameters()


# Defaults every request starts from. Requests never mutate it; each gets its own copy with overrides.
default_params = load_default_parameters()


@app.route('/default_parameters')
def get_default_parameters():
    """Flattened dot-notation defaults, for initializing the sliders."""
    return jsonify(sanitize_for_json(default_params.to_dict()))


@app.route('/evaluate', methods=['POST'])
def evaluate_model():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object of parameter overrides"}), 400

    try:
        params = default_params.update_from_dict(data)
        results = evaluate(params)
    except ValidationError as e:
        logger.info("Rejected parameters: %s", e)
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("ERROR evaluating model")
        return jsonify({"error": str(e)}), 500

    return jsonify(extract_plot_data(results))


@app.route('/sensitivity', methods=['POST'])
def sensitivity():
    """Sweep one parameter: {"field": "safeguard_robustness.steps_to_break", "values": [...], "overrides": {...}}"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    field_name = data.get('field')
    values = data.get('values')
    overrides = data.get('overrides', {})
    if not isinstance(field_name, str) or not isinstance(values, list) or not values:
        return jsonify({"error": "Expected 'field' (string) and 'values' (non-empty list)"}), 400
    if len(values) > MAX_SWEEP_VALUES:
        return jsonify({"error": f"At most {MAX_SWEEP_VALUES} values per sweep"}), 400
    if not isinstance(overrides, dict):
        return jsonify({"error": "'overrides' must be a JSON object of parameter overrides"}), 400

    try:
        base_params = default_params.update_from_dict(overrides)
        df = sweep_parameter(base_params, field_name, values)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("ERROR running sensitivity sweep")
        return jsonify({"error": str(e)}), 500

    return jsonify({"rows": sanitize_for_json(df.to_dict(orient='records'))})


@app.route('/log_client_error', methods=['POST'])
def log_client_error():
    """Log JavaScript errors from the client to the server log."""
    error_data = request.get_json(silent=True)
    if not isinstance(error_data, dict):
        error_data = {}
    logger.error(
        "JAVASCRIPT ERROR: %s (source %s:%s:%s)\n  Stack: %s",
        error_data.get('message', 'No message'),
        error_data.get('source'), error_data.get('lineno'), error_data.get('colno'),
        error_data.get('stack', 'No stack trace'),
    )
    return jsonify({"status": "logged"}), 200


if __name__ == '__main__':
    import sys
    port = int(os.environ.get('PORT', sys.argv[1] if len(sys.argv) > 1 else 5001))
    app.run(debug=True, port=port)
