"""
Tests for the Lambda handlers: request parsing, role guards and error mapping.
"""
import json
import pytest
from decimal import Decimal
from unittest.mock import patch

from conftest import HOUR, NOW, PROVIDER, FREELANCER, OTHER_FREELANCER, VERIFIERS, api_event


def body_of(response):
    return json.loads(response['body'])


class TestWalletHandlers:
    """Tests for account registration, balance and deposit."""

    def test_register_and_read_balance(self, store):
        from escrow_market.handlers.accounts.register_account import handler as register
        from escrow_market.handlers.wallet.get_wallet import handler as get_wallet

        response = register(api_event('new-provider', {'role': 'provider', 'name': 'New Co'}), None)
        assert response['statusCode'] == 201

        response = get_wallet(api_event('new-provider'), None)
        assert response['statusCode'] == 200
        assert body_of(response)['balance'] == 1000

    def test_register_twice(self, accounts):
        from escrow_market.handlers.accounts.register_account import handler as register

        response = register(api_event(PROVIDER, {'role': 'provider'}), None)

        assert response['statusCode'] == 409
        assert body_of(response)['error'] == 'AlreadyProcessed'

    def test_unauthenticated(self, store):
        from escrow_market.handlers.wallet.get_wallet import handler as get_wallet

        response = get_wallet(api_event(), None)

        assert response['statusCode'] == 403

    def test_deposit(self, accounts):
        from escrow_market.handlers.wallet.deposit_funds import handler as deposit

        response = deposit(api_event(FREELANCER, {'amount': 12.5}), None)

        assert response['statusCode'] == 200
        new_balance = body_of(response)['newBalance']
        assert isinstance(new_balance, str)
        assert Decimal(new_balance) == Decimal('12.50')

    def test_deposit_missing_amount(self, accounts):
        from escrow_market.handlers.wallet.deposit_funds import handler as deposit

        response = deposit(api_event(FREELANCER, {}), None)

        assert response['statusCode'] == 400

    def test_storage_outage_is_retryable(self, accounts):
        from escrow_market.handlers.wallet.get_wallet import handler as get_wallet
        from escrow_market.shared.errors import StorageUnavailable

        with patch('escrow_market.handlers.wallet.get_wallet.balance_of',
                   side_effect=StorageUnavailable('DynamoDB down')):
            response = get_wallet(api_event(PROVIDER), None)

        assert response['statusCode'] == 503
        assert body_of(response)['retryable'] is True

    def test_unexpected_error(self, accounts):
        from escrow_market.handlers.wallet.get_wallet import handler as get_wallet

        with patch('escrow_market.handlers.wallet.get_wallet.balance_of', side_effect=RuntimeError('boom')):
            response = get_wallet(api_event(PROVIDER), None)

        assert response['statusCode'] == 500
        assert 'boom' not in response['body']


class TestJobHandlers:
    """Tests for the job endpoints."""

    def test_full_flow(self, accounts):
        from escrow_market.handlers.jobs.apply_to_job import handler as apply
        from escrow_market.handlers.jobs.create_job import handler as create
        from escrow_market.handlers.jobs.list_jobs import handler as list_jobs
        from escrow_market.handlers.jobs.select_freelancer import handler as select
        from escrow_market.handlers.submissions.list_submissions import handler as list_submissions
        from escrow_market.handlers.submissions.submit_work import handler as submit
        from escrow_market.handlers.submissions.verify_submission import handler as verify
        from escrow_market.shared.ledger import balance_of

        response = create(api_event(PROVIDER, {
            'title': 'Landing page',
            'description': 'Build it',
            'budget': 700,
            'requiredSkills': ['html'],
            'deadline': 4_000_000_000,
        }), None)
        assert response['statusCode'] == 201
        job_id = body_of(response)['jobId']

        response = apply(api_event(FREELANCER, {'price': 500, 'proposal': 'Me'}, path={'jobId': job_id}), None)
        assert response['statusCode'] == 200

        response = select(api_event(PROVIDER, {'freelancerId': FREELANCER, 'verifierIds': VERIFIERS},
                                    path={'jobId': job_id}), None)
        assert response['statusCode'] == 200
        assert body_of(response)['status'] == 'assigned'
        assert balance_of(PROVIDER, accounts) == Decimal('400')

        response = list_jobs(api_event(VERIFIERS[0], query={'view': 'verifier'}), None)
        assert [job['jobId'] for job in body_of(response)['jobs']] == [job_id]

        response = submit(api_event(FREELANCER, {'jobId': job_id, 'text': 'Done', 'images': ['a.png']}), None)
        assert response['statusCode'] == 201
        submission_id = body_of(response)['submissionId']

        for verifier_id in VERIFIERS:
            response = verify(api_event(verifier_id, {'approved': True, 'comments': 'ok'},
                                        path={'submissionId': submission_id}), None)
            assert response['statusCode'] == 200
        assert body_of(response)['status'] == 'approved'
        assert balance_of(FREELANCER, accounts) == Decimal('500')

        response = list_submissions(api_event(PROVIDER, path={'jobId': job_id}), None)
        assert body_of(response)['submissions'][0]['status'] == 'approved'

        response = list_jobs(api_event(path={'jobId': job_id}), None)
        assert body_of(response)['status'] == 'completed'

    def test_selection_without_funds(self, accounts):
        from escrow_market.handlers.jobs.select_freelancer import handler as select
        from escrow_market.shared.jobs import apply_to_job, create_job

        job = create_job(PROVIDER, 't', 'd', 5000, store=accounts, now=NOW)
        apply_to_job(job['jobId'], FREELANCER, 2000, store=accounts, now=NOW)

        response = select(api_event(PROVIDER, {'freelancerId': FREELANCER, 'verifierIds': VERIFIERS},
                                    path={'jobId': job['jobId']}), None)

        assert response['statusCode'] == 402
        assert body_of(response)['error'] == 'InsufficientFunds'

    def test_wrong_role_cannot_apply(self, open_job):
        from escrow_market.handlers.jobs.apply_to_job import handler as apply

        response = apply(api_event(PROVIDER, {'price': 10}, path={'jobId': open_job}), None)

        assert response['statusCode'] == 403

    def test_malformed_verifier_ids(self, open_job):
        from escrow_market.handlers.jobs.select_freelancer import handler as select

        for verifier_ids in ([{'id': VERIFIERS[0]}], [123], 'verifier-1'):
            response = select(api_event(PROVIDER, {'freelancerId': FREELANCER, 'verifierIds': verifier_ids},
                                        path={'jobId': open_job}), None)

            assert response['statusCode'] == 400
            assert body_of(response)['retryable'] is False

    def test_verifier_directory(self, accounts):
        from escrow_market.handlers.accounts.list_verifiers import handler as list_verifiers

        response = list_verifiers(api_event(PROVIDER), None)

        assert response['statusCode'] == 200
        assert [v['walletId'] for v in body_of(response)['verifiers']] == VERIFIERS
        assert all('balance' not in v for v in body_of(response)['verifiers'])

        response = list_verifiers(api_event(FREELANCER), None)
        assert response['statusCode'] == 403

    def test_unknown_view(self, accounts):
        from escrow_market.handlers.jobs.list_jobs import handler as list_jobs

        response = list_jobs(api_event(PROVIDER, query={'view': 'everything'}), None)

        assert response['statusCode'] == 400

    def test_missing_job(self, accounts):
        from escrow_market.handlers.jobs.list_jobs import handler as list_jobs

        response = list_jobs(api_event(path={'jobId': 'nope'}), None)

        assert response['statusCode'] == 404


class TestSubmissionHandlers:
    """Tests for the submission endpoints."""

    def test_outsider_cannot_submit(self, assigned_job):
        from escrow_market.handlers.submissions.submit_work import handler as submit

        response = submit(api_event(OTHER_FREELANCER, {'jobId': assigned_job, 'text': 'hi'}), None)

        assert response['statusCode'] == 403

    def test_non_string_job_id(self, assigned_job):
        from escrow_market.handlers.submissions.submit_work import handler as submit

        response = submit(api_event(FREELANCER, {'jobId': 123, 'text': 'hi'}), None)

        assert response['statusCode'] == 400

    def test_dashboard_lists_submissions_across_jobs(self, assigned_job, accounts):
        from escrow_market.handlers.submissions.list_my_submissions import handler as list_mine
        from escrow_market.shared.submissions import submit_work

        submit_work(assigned_job, FREELANCER, 'Draft', store=accounts, now=NOW)

        response = list_mine(api_event(VERIFIERS[0]), None)

        assert response['statusCode'] == 200
        submissions = body_of(response)['submissions']
        assert len(submissions) == 1
        assert submissions[0]['job']['jobId'] == assigned_job

    def test_approved_flag_required(self, assigned_job):
        from escrow_market.handlers.submissions.verify_submission import handler as verify

        response = verify(api_event(VERIFIERS[0], {'comments': 'no verdict'},
                                    path={'submissionId': 'any'}), None)

        assert response['statusCode'] == 400


class TestSweepHandler:
    """Tests for the scheduled sweeper entry point."""

    def test_scheduled_run(self, assigned_job, accounts):
        from escrow_market.handlers.jobs.sweep_expired import handler as sweep
        from escrow_market.shared.ledger import balance_of

        with patch('escrow_market.shared.sweeper.current_timestamp', return_value=NOW + 2 * HOUR):
            result = sweep({'source': 'aws.events'}, None)

        assert result == {'checked': 1, 'expired': 1}
        assert balance_of(PROVIDER, accounts) == Decimal('1000')


class TestResponseEncoding:
    """Tests for response serialization and request logging."""

    def test_money_stays_exact(self):
        from escrow_market.shared.utils import format_response

        response = format_response(200, {
            'amount': Decimal('0.10') + Decimal('0.20'),
            'balance': Decimal('400.00'),
            'createdAt': Decimal('1800000000'),
        })

        assert body_of(response) == {'amount': '0.30', 'balance': 400, 'createdAt': 1800000000}

    def test_event_summary_leaves_out_body_and_claims(self):
        from escrow_market.shared.logging import describe_event

        event = api_event(PROVIDER, {'amount': 5}, path={'jobId': 'j-1'})
        event.update({'httpMethod': 'POST', 'resource': '/jobs/{jobId}/select'})
        event['requestContext']['authorizer']['claims']['email'] = 'p@example.com'

        summary = describe_event(event)

        assert summary == {
            'route': 'POST /jobs/{jobId}/select',
            'actor': PROVIDER,
            'pathParameters': {'jobId': 'j-1'},
            'queryStringParameters': None,
        }

    def test_scheduled_event_summary(self):
        from escrow_market.shared.logging import describe_event

        assert describe_event({'source': 'aws.events', 'detail': {}}) == {'source': 'aws.events'}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
