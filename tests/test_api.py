import unittest
import uuid
from decimal import Decimal

from tests.helpers import balance_of, make_app, total_of


class LedgerApiTestCase(unittest.TestCase):
    def setUp(self):
        self.app = make_app(
            SIGNUP_BALANCE_MIN=Decimal('500.00'),
            SIGNUP_BALANCE_MAX=Decimal('500.00'),
        )
        self.client = self.app.test_client()
        self.password = 'password123'

    def signup(self, username, first_name='Alice', last_name='Jones'):
        resp = self.client.post('/api/v1/user/signup', json={
            'username': username,
            'password': self.password,
            'firstName': first_name,
            'lastName': last_name,
        })
        self.assertEqual(resp.status_code, 201, resp.get_json())
        data = resp.get_json()
        return data['user_id'], {'Authorization': f"Bearer {data['token']}"}


class UserApiTests(LedgerApiTestCase):
    def test_signup_opens_seeded_account(self):
        user_id, headers = self.signup('alice')

        resp = self.client.get('/api/v1/account/balance', headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['balance'], '500.00')
        self.assertEqual(balance_of(self.app, user_id), Decimal('500.00'))

    def test_signup_balance_is_randomized_within_bounds(self):
        app = make_app(SIGNUP_BALANCE_MIN=Decimal('1.00'), SIGNUP_BALANCE_MAX=Decimal('10000.00'))
        client = app.test_client()
        resp = client.post('/api/v1/user/signup', json={
            'username': 'bounded',
            'password': 'secret99',
            'firstName': 'Bo',
            'lastName': 'Unded',
        })
        self.assertEqual(resp.status_code, 201)
        balance = balance_of(app, resp.get_json()['user_id'])
        self.assertGreaterEqual(balance, Decimal('1.00'))
        self.assertLessEqual(balance, Decimal('10000.00'))
        self.assertEqual(balance, balance.quantize(Decimal('0.01')))

    def test_duplicate_username(self):
        self.signup('alice')
        resp = self.client.post('/api/v1/user/signup', json={
            'username': 'alice',
            'password': self.password,
            'firstName': 'Other',
            'lastName': 'Person',
        })
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.get_json()['error_code'], 'USERNAME_TAKEN')
        self.assertEqual(total_of(self.app), Decimal('500.00'))

    def test_signup_validation(self):
        bad_bodies = [
            {'username': 'ab', 'password': self.password, 'firstName': 'A', 'lastName': 'B'},
            {'username': 'bad name', 'password': self.password, 'firstName': 'A', 'lastName': 'B'},
            {'username': 'alice', 'password': '123', 'firstName': 'A', 'lastName': 'B'},
            {'username': 'alice', 'password': self.password, 'firstName': '', 'lastName': 'B'},
            {'username': 'alice', 'password': self.password, 'firstName': 'A' * 51, 'lastName': 'B'},
        ]
        for body in bad_bodies:
            resp = self.client.post('/api/v1/user/signup', json=body)
            self.assertEqual(resp.status_code, 400, body)
            self.assertEqual(resp.get_json()['error_code'], 'VALIDATION_ERROR')

        resp = self.client.post('/api/v1/user/signup', data='not json')
        self.assertEqual(resp.status_code, 400)

    def test_signin(self):
        self.signup('alice')

        resp = self.client.post('/api/v1/user/signin', json={
            'username': 'alice',
            'password': self.password,
        })
        self.assertEqual(resp.status_code, 200)
        headers = {'Authorization': f"Bearer {resp.get_json()['token']}"}
        self.assertEqual(self.client.get('/api/v1/user/me', headers=headers).status_code, 200)

    def test_signin_with_wrong_password(self):
        self.signup('alice')
        resp = self.client.post('/api/v1/user/signin', json={
            'username': 'alice',
            'password': 'wrong-password',
        })
        self.assertEqual(resp.status_code, 401)

        resp = self.client.post('/api/v1/user/signin', json={
            'username': 'nobody',
            'password': self.password,
        })
        self.assertEqual(resp.status_code, 401)

    def test_me_never_exposes_password_hash(self):
        user_id, headers = self.signup('alice')
        resp = self.client.get('/api/v1/user/me', headers=headers)
        data = resp.get_json()
        self.assertEqual(data['id'], user_id)
        self.assertEqual(data['username'], 'alice')
        self.assertNotIn('password_hash', data)
        self.assertEqual(data['firstName'], 'Alice')
        self.assertEqual(data['lastName'], 'Jones')
        self.assertNotIn('first_name', data)

    def test_protected_routes_require_token(self):
        self.assertEqual(self.client.get('/api/v1/user/me').status_code, 401)
        self.assertEqual(self.client.get('/api/v1/account/balance').status_code, 401)
        resp = self.client.post('/api/v1/account/transfer', json={'to': str(uuid.uuid4()), 'amount': 1})
        self.assertEqual(resp.status_code, 401)

    def test_update_profile_and_password(self):
        _, headers = self.signup('alice')

        resp = self.client.put('/api/v1/user/', headers=headers, json={
            'firstName': 'Alicia',
            'password': 'new-password',
        })
        self.assertEqual(resp.status_code, 200)

        me = self.client.get('/api/v1/user/me', headers=headers).get_json()
        self.assertEqual(me['firstName'], 'Alicia')
        self.assertEqual(me['lastName'], 'Jones')

        old = self.client.post('/api/v1/user/signin', json={'username': 'alice', 'password': self.password})
        self.assertEqual(old.status_code, 401)
        new = self.client.post('/api/v1/user/signin', json={'username': 'alice', 'password': 'new-password'})
        self.assertEqual(new.status_code, 200)

    def test_update_profile_rejects_empty_changes(self):
        _, headers = self.signup('alice')
        resp = self.client.put('/api/v1/user/', headers=headers, json={})
        self.assertEqual(resp.status_code, 400)

    def test_bulk_filters_by_name_and_hides_caller(self):
        alice_id, alice_headers = self.signup('alice', 'Alice', 'Jones')
        self.signup('bob', 'Bob', 'Smith')
        self.signup('carol', 'Carol', 'Jonesy')

        resp = self.client.get('/api/v1/user/bulk?filter=jones')
        names = sorted(u['username'] for u in resp.get_json()['user'])
        self.assertEqual(names, ['alice', 'carol'])

        resp = self.client.get('/api/v1/user/bulk', headers=alice_headers)
        users = resp.get_json()['user']
        self.assertNotIn(alice_id, [u['id'] for u in users])
        self.assertEqual(len(users), 2)
        for user in users:
            self.assertNotIn('password_hash', user)
            self.assertNotIn('balance', user)


    def test_bulk_filter_treats_wildcards_literally(self):
        self.signup('alice', 'Alice', 'Jones')
        self.signup('bob', 'Bob', 'Smith')
        self.signup('under', 'Ann_e', 'Pct%Name')

        for filter_text, expected in [('_', ['under']), ('%', ['under']), ('n_e', ['under']), ('\\', [])]:
            resp = self.client.get('/api/v1/user/bulk', query_string={'filter': filter_text})
            self.assertEqual(resp.status_code, 200)
            names = sorted(u['username'] for u in resp.get_json()['user'])
            self.assertEqual(names, expected, filter_text)

        resp = self.client.get('/api/v1/user/bulk?filter=jones')
        user = resp.get_json()['user'][0]
        self.assertEqual(user['firstName'], 'Alice')
        self.assertEqual(user['lastName'], 'Jones')


class TransferApiTests(LedgerApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice_id, self.alice = self.signup('alice')
        self.bob_id, self.bob = self.signup('bob', 'Bob', 'Smith')

    def transfer(self, headers, to, amount):
        return self.client.post('/api/v1/account/transfer', headers=headers, json={
            'to': to,
            'amount': amount,
        })

    def test_transfer_success(self):
        resp = self.transfer(self.alice, self.bob_id, 200)
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data['message'], 'Transfer successful')
        self.assertEqual(data['balance'], '300.00')
        self.assertEqual(data['amount'], '200.00')

        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('300.00'))
        self.assertEqual(balance_of(self.app, self.bob_id), Decimal('700.00'))

    def test_transfer_with_cents(self):
        resp = self.transfer(self.alice, self.bob_id, '0.10')
        self.assertEqual(resp.status_code, 200)
        resp = self.transfer(self.alice, self.bob_id, 0.2)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('499.70'))
        self.assertEqual(total_of(self.app), Decimal('1000.00'))

    def test_insufficient_balance(self):
        resp = self.transfer(self.alice, self.bob_id, '500.01')
        self.assertEqual(resp.status_code, 402)
        self.assertEqual(resp.get_json()['error_code'], 'INSUFFICIENT_BALANCE')
        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('500.00'))
        self.assertEqual(balance_of(self.app, self.bob_id), Decimal('500.00'))

    def test_unknown_recipient(self):
        resp = self.transfer(self.alice, str(uuid.uuid4()), 10)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()['error_code'], 'RECIPIENT_NOT_FOUND')
        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('500.00'))

    def test_self_transfer(self):
        resp = self.transfer(self.alice, self.alice_id, 10)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('500.00'))

    def test_invalid_input(self):
        for to, amount in [
            (None, 10),
            ('not-a-uuid', 10),
            (self.bob_id, -5),
            (self.bob_id, 0),
            (self.bob_id, 'ten'),
            (self.bob_id, '1.999'),
            (self.bob_id, None),
        ]:
            resp = self.transfer(self.alice, to, amount)
            self.assertEqual(resp.status_code, 400, (to, amount))
        self.assertEqual(total_of(self.app), Decimal('1000.00'))

    def test_transfers_are_zero_sum(self):
        for amount in ('12.34', '100', '0.01', '250.50'):
            self.assertEqual(self.transfer(self.alice, self.bob_id, amount).status_code, 200)
        self.assertEqual(self.transfer(self.bob, self.alice_id, '99.99').status_code, 200)

        self.assertEqual(total_of(self.app), Decimal('1000.00'))
        self.assertEqual(balance_of(self.app, self.alice_id), Decimal('237.14'))


class HealthTests(unittest.TestCase):
    def test_health(self):
        resp = make_app().test_client().get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['status'], 'healthy')


if __name__ == '__main__':
    unittest.main()
