"""
Tests for offers on tasks.
"""

import pytest
from faker import Faker

from neighborly.models import Offer, OfferStatus
from tests.conftest import post_offer

fake = Faker()


class TestSubmitOffer:
    """Tests for POST /api/tasks/:id/offers"""

    def test_submit_offer_success(self, client, open_task, helper_a, helper_a_headers):
        """Test a helper offering on a requested task."""
        note = fake.sentence()
        response = client.post(
            f'/api/tasks/{open_task["id"]}/offers',
            json={'note': note},
            headers=helper_a_headers
        )

        assert response.status_code == 201
        offer = response.json['offer']
        assert offer['status'] == OfferStatus.PENDING
        assert offer['helper_id'] == helper_a.id
        assert offer['helper_name'] == 'Alex Helper'
        assert offer['note'] == note

    def test_submit_offer_with_proposed_price(self, client, open_task, helper_a_headers):
        response = client.post(
            f'/api/tasks/{open_task["id"]}/offers',
            json={'note': 'Can do', 'proposed_price': '35.50'},
            headers=helper_a_headers
        )

        assert response.status_code == 201
        assert response.json['offer']['proposed_price'] == 35.5

    def test_submit_offer_invalid_proposed_price(self, client, open_task, helper_a_headers):
        response = client.post(
            f'/api/tasks/{open_task["id"]}/offers',
            json={'proposed_price': -5},
            headers=helper_a_headers
        )

        assert response.status_code == 400

    @pytest.mark.parametrize('proposed_price', ['35.555', '1e20'])
    def test_submit_offer_proposed_price_out_of_range(self, client, open_task, helper_a_headers, proposed_price):
        """Test a proposed price must fit in whole cents and a sane range."""
        response = client.post(
            f'/api/tasks/{open_task["id"]}/offers',
            json={'proposed_price': proposed_price},
            headers=helper_a_headers
        )

        assert response.status_code == 400

    def test_submit_offer_task_not_found(self, client, helper_a_headers):
        response = client.post('/api/tasks/missing/offers', json={}, headers=helper_a_headers)

        assert response.status_code == 404

    def test_submit_offer_on_own_task(self, client, open_task, poster_headers):
        """Test a poster cannot offer on their own task."""
        response = client.post(f'/api/tasks/{open_task["id"]}/offers', json={}, headers=poster_headers)

        assert response.status_code == 403

    def test_submit_duplicate_offer(self, client, open_task, helper_a_headers):
        """Test one offer per helper per task."""
        post_offer(client, open_task['id'], helper_a_headers)

        response = client.post(f'/api/tasks/{open_task["id"]}/offers', json={}, headers=helper_a_headers)

        assert response.status_code == 400
        assert 'already made an offer' in response.json['error']
        assert Offer.query.filter_by(task_id=open_task['id']).count() == 1

    def test_submit_offer_on_accepted_task(self, client, accepted_task, stranger, stranger_headers):
        """Test offers are refused once a helper is bound, and nothing is stored."""
        task_id = accepted_task['task']['id']

        response = client.post(f'/api/tasks/{task_id}/offers', json={'note': 'late'}, headers=stranger_headers)

        assert response.status_code == 409
        assert response.json['code'] == 'INVALID_STATE'
        assert Offer.query.filter_by(task_id=task_id, helper_id=stranger.id).count() == 0

    def test_submit_offer_on_canceled_task(self, client, open_task, poster_headers, helper_a_headers):
        client.post(
            f'/api/tasks/{open_task["id"]}/cancel',
            json={'canceled_by': 'poster'},
            headers=poster_headers
        )

        response = client.post(f'/api/tasks/{open_task["id"]}/offers', json={}, headers=helper_a_headers)

        assert response.status_code == 409
        assert Offer.query.count() == 0

    def test_submit_offer_unauthenticated(self, client, open_task):
        response = client.post(f'/api/tasks/{open_task["id"]}/offers', json={})

        assert response.status_code == 401


class TestListOffers:
    """Tests for GET /api/tasks/:id/offers"""

    def test_poster_sees_all_offers(self, client, offered_task, poster_headers):
        task_id = offered_task['task']['id']

        response = client.get(f'/api/tasks/{task_id}/offers', headers=poster_headers)

        assert response.status_code == 200
        assert response.json['total'] == 2
        ids = {offer['id'] for offer in response.json['offers']}
        assert ids == {offered_task['offer_a']['id'], offered_task['offer_b']['id']}

    def test_helper_sees_only_own_offer(self, client, offered_task, helper_b_headers):
        task_id = offered_task['task']['id']

        response = client.get(f'/api/tasks/{task_id}/offers', headers=helper_b_headers)

        assert [offer['id'] for offer in response.json['offers']] == [offered_task['offer_b']['id']]

    def test_stranger_sees_nothing(self, client, offered_task, stranger_headers):
        task_id = offered_task['task']['id']

        response = client.get(f'/api/tasks/{task_id}/offers', headers=stranger_headers)

        assert response.json['offers'] == []
