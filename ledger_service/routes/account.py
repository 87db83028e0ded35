from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from ledger_service.extensions import get_coordinator
from ledger_service.validation import require_json_object

account_bp = Blueprint('account', __name__)


@account_bp.route('/balance', methods=['GET'])
@jwt_required()
def get_balance():
    """
    Get the caller's balance
    ---
    tags:
      - Account
    security:
      - Bearer: []
    responses:
      200:
        description: Current balance as a decimal string
      404:
        description: Account not found
    """
    balance = get_coordinator().get_balance(get_jwt_identity())
    return jsonify({'balance': str(balance)}), 200


@account_bp.route('/transfer', methods=['POST'])
@jwt_required()
def transfer():
    """
    Transfer funds from the caller to another user atomically
    ---
    tags:
      - Account
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - to
            - amount
          properties:
            to:
              type: string
              description: Recipient user id
            amount:
              type: string
              description: Positive amount with at most two decimal places
    responses:
      200:
        description: Transfer successful
      400:
        description: Invalid input or transfer to self
      402:
        description: Insufficient balance
      404:
        description: Sender or recipient account not found
      503:
        description: Transfer kept conflicting, try again
    """
    data = require_json_object(request.get_json(silent=True))
    receipt = get_coordinator().transfer(get_jwt_identity(), data.get('to'), data.get('amount'))

    body = receipt.to_dict()
    body['message'] = 'Transfer successful'
    return jsonify(body), 200
