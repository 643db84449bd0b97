"""
Tests for posting and browsing tasks.
"""

import pytest

from neighborly import db
from neighborly.models import Task, TaskStatus, PaymentStatus, User
from tests.conftest import task_payload, post_task, auth_headers_for


class TestCreateTask:
    """Tests for POST /api/tasks"""

    def test_create_task_success(self, client, poster, poster_headers):
        """Test creating a new task."""
        response = client.post('/api/tasks', json=task_payload(price=30), headers=poster_headers)

        assert response.status_code == 201
        task = response.json['task']
        assert task['status'] == TaskStatus.REQUESTED
        assert task['payment_status'] == PaymentStatus.PENDING
        assert task['poster_id'] == poster.id
        assert task['helper_id'] is None
        assert task['price'] == 30.0
        assert task['platform_fee_amount'] is None

    def test_create_task_at_minimum_price(self, client, poster_headers):
        """Test a task priced exactly at the minimum is accepted."""
        response = client.post('/api/tasks', json=task_payload(price='7.00'), headers=poster_headers)

        assert response.status_code == 201
        assert response.json['task']['price'] == 7.0

    def test_create_task_below_minimum_price(self, client, poster_headers):
        """Test a task one cent under the minimum is rejected and not stored."""
        response = client.post('/api/tasks', json=task_payload(price=6.99), headers=poster_headers)

        assert response.status_code == 400
        assert response.json['code'] == 'INVALID_INPUT'
        assert 'Minimum job price is $7.00' in response.json['error']
        assert Task.query.count() == 0

    def test_create_task_invalid_category(self, client, poster_headers):
        response = client.post('/api/tasks', json=task_payload(category='rocket-science'), headers=poster_headers)

        assert response.status_code == 400
        assert 'Invalid category' in response.json['error']

    def test_create_task_category_case_insensitive(self, client, poster_headers):
        task = post_task(client, poster_headers, category=' Cleaning ')

        assert task['category'] == 'cleaning'

    @pytest.mark.parametrize('category', ['shopping', 'grocery', 'repair', 'errands'])
    def test_create_task_category_outside_closed_set(self, client, poster_headers, category):
        """Test near-miss category names are rejected rather than remapped."""
        response = client.post('/api/tasks', json=task_payload(category=category), headers=poster_headers)

        assert response.status_code == 400
        assert Task.query.count() == 0

    @pytest.mark.parametrize('field', ['title', 'description', 'zip_code', 'full_address'])
    def test_create_task_missing_field(self, client, poster_headers, field):
        """Test each required field is enforced."""
        data = task_payload()
        del data[field]

        response = client.post('/api/tasks', json=data, headers=poster_headers)

        assert response.status_code == 400
        assert field in response.json['error']

    def test_create_task_non_numeric_price(self, client, poster_headers):
        response = client.post('/api/tasks', json=task_payload(price='thirty'), headers=poster_headers)

        assert response.status_code == 400

    @pytest.mark.parametrize('price', ['1e20', 10 ** 9, '10.00001'])
    def test_create_task_price_out_of_range(self, client, poster_headers, price):
        """Test absurdly large or over-precise prices never reach the payment provider."""
        response = client.post('/api/tasks', json=task_payload(price=price), headers=poster_headers)

        assert response.status_code == 400
        assert Task.query.count() == 0

    def test_create_task_photos_required_must_be_bool(self, client, poster_headers):
        response = client.post('/api/tasks', json=task_payload(photos_required='yes'), headers=poster_headers)

        assert response.status_code == 400

    def test_create_task_unauthenticated(self, client):
        """Test creating task without authentication."""
        response = client.post('/api/tasks', json=task_payload())

        assert response.status_code == 401
        assert response.json['code'] == 'UNAUTHORIZED'

    def test_create_task_creates_missing_user(self, client):
        """Test a first-time caller gets a user row on first post."""
        headers = auth_headers_for('brand-new-user')
        post_task(client, headers)

        assert db.session.get(User, 'brand-new-user') is not None


class TestListTasks:
    """Tests for GET /api/tasks"""

    def test_list_tasks_empty(self, client):
        """Test listing when no tasks exist."""
        response = client.get('/api/tasks')

        assert response.status_code == 200
        assert response.json['tasks'] == []
        assert response.json['total'] == 0

    def test_list_only_requested_by_default(self, client, poster_headers, accepted_task):
        """Test accepted tasks drop out of the default browse list."""
        other = post_task(client, poster_headers)

        response = client.get('/api/tasks')

        ids = [task['id'] for task in response.json['tasks']]
        assert ids == [other['id']]

    def test_list_by_status(self, client, accepted_task):
        response = client.get('/api/tasks?status=accepted')

        assert response.status_code == 200
        assert [t['id'] for t in response.json['tasks']] == [accepted_task['task']['id']]

    def test_list_invalid_status(self, client):
        response = client.get('/api/tasks?status=bogus')

        assert response.status_code == 400

    def test_list_by_zip_code(self, client, poster_headers):
        near = post_task(client, poster_headers, zip_code='94107')
        post_task(client, poster_headers, zip_code='10001')

        response = client.get('/api/tasks?zip_code=94107')

        assert [t['id'] for t in response.json['tasks']] == [near['id']]

    def test_list_by_multiple_categories(self, client, poster_headers):
        """Test comma-separated category filtering."""
        cleaning = post_task(client, poster_headers, category='cleaning')
        moving = post_task(client, poster_headers, category='moving')
        post_task(client, poster_headers, category='handyman')

        response = client.get('/api/tasks?category=cleaning,moving')

        ids = {t['id'] for t in response.json['tasks']}
        assert ids == {cleaning['id'], moving['id']}

    def test_list_hides_full_address(self, client, open_task):
        """Test anonymous browsing never sees the street address."""
        response = client.get('/api/tasks')

        task = response.json['tasks'][0]
        assert task['full_address'] is None
        assert task['area_description']

    def test_list_pagination(self, client, poster_headers):
        for _ in range(3):
            post_task(client, poster_headers)

        response = client.get('/api/tasks?per_page=2&page=1')

        assert len(response.json['tasks']) == 2
        assert response.json['total'] == 3
        assert response.json['has_more'] is True

    def test_list_includes_pending_offer_count(self, client, offered_task):
        response = client.get('/api/tasks')

        assert response.json['tasks'][0]['pending_offers_count'] == 2


class TestGetTask:
    """Tests for GET /api/tasks/:id"""

    def test_get_task_success(self, client, open_task):
        """Test getting a specific task."""
        response = client.get(f'/api/tasks/{open_task["id"]}')

        assert response.status_code == 200
        assert response.json['title'] == open_task['title']

    def test_get_task_not_found(self, client):
        """Test getting non-existent task."""
        response = client.get('/api/tasks/does-not-exist')

        assert response.status_code == 404
        assert response.json['code'] == 'NOT_FOUND'

    def test_full_address_visible_to_poster(self, client, open_task, poster_headers):
        response = client.get(f'/api/tasks/{open_task["id"]}', headers=poster_headers)

        assert response.json['full_address'] == open_task['full_address']

    def test_full_address_hidden_from_offering_helper(self, client, offered_task, helper_a_headers):
        """Test a helper who only made an offer cannot see the address."""
        task_id = offered_task['task']['id']

        response = client.get(f'/api/tasks/{task_id}', headers=helper_a_headers)

        assert response.json['full_address'] is None
        assert response.json['confirmation_code'] is None

    def test_full_address_visible_to_bound_helper(self, client, accepted_task, helper_a_headers, helper_b_headers):
        """Test the accepted helper sees the address and the declined one does not."""
        task_id = accepted_task['task']['id']

        bound = client.get(f'/api/tasks/{task_id}', headers=helper_a_headers)
        declined = client.get(f'/api/tasks/{task_id}', headers=helper_b_headers)

        assert bound.json['full_address'] == accepted_task['task']['full_address']
        assert declined.json['full_address'] is None

    def test_invalid_token_treated_as_anonymous(self, client, open_task):
        response = client.get(
            f'/api/tasks/{open_task["id"]}',
            headers={'Authorization': 'Bearer not-a-token'}
        )

        assert response.status_code == 200
        assert response.json['full_address'] is None


class TestMyTasks:
    """Tests for GET /api/tasks/created and /api/tasks/my"""

    def test_created_tasks(self, client, poster_headers, helper_a_headers):
        mine = post_task(client, poster_headers)
        post_task(client, helper_a_headers)

        response = client.get('/api/tasks/created', headers=poster_headers)

        assert response.status_code == 200
        assert [t['id'] for t in response.json['tasks']] == [mine['id']]
        assert response.json['tasks'][0]['full_address'] == mine['full_address']

    def test_my_tasks_as_helper(self, client, accepted_task, helper_a_headers, helper_b_headers):
        bound = client.get('/api/tasks/my', headers=helper_a_headers)
        declined = client.get('/api/tasks/my', headers=helper_b_headers)

        assert [t['id'] for t in bound.json['tasks']] == [accepted_task['task']['id']]
        assert declined.json['tasks'] == []

    def test_my_tasks_requires_auth(self, client):
        response = client.get('/api/tasks/my')

        assert response.status_code == 401
