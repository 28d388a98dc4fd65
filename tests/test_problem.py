import io
import json
import hashlib
import secrets
import pytest
from zipfile import ZipFile
from mongo import *
from mongo import bus, engine
from tests.base_tester import BaseTester
from tests import utils


def random_pid():
    return f'P{secrets.token_hex(4)}'


def random_domain():
    return utils.domain.create_domain(f'd{secrets.token_hex(4)}')


def zip_names(data: bytes):
    with ZipFile(io.BytesIO(data)) as zf:
        return set(zf.namelist())


@pytest.fixture
def listen():
    handles = []

    def register(topic, fn):
        handles.append(bus.on(topic, fn))

    yield register
    for handle in handles:
        handle.dispose()


class TestProblemModel(BaseTester):

    def test_get_by_alias_or_doc_id(self):
        pid = random_pid()
        problem = utils.problem.create_problem(pid=pid)
        assert Problem.get('system', pid) == problem
        assert Problem.get('system', str(problem.doc_id)) == problem
        assert Problem.get('system', problem.doc_id).pid == pid

    def test_not_found(self):
        with pytest.raises(ProblemNotFound):
            Problem.get('system', 'Nope')
        with pytest.raises(DoesNotExist):
            Problem.get('system', 99999)

    def test_doc_id_is_sequential_per_domain(self):
        domain = random_domain()
        first = utils.problem.create_problem(domain_id=domain.domain_id)
        second = utils.problem.create_problem(domain_id=domain.domain_id)
        assert (first.doc_id, second.doc_id) == (1, 2)

    def test_alias_is_unique_in_domain(self):
        pid = random_pid()
        utils.problem.create_problem(pid=pid)
        with pytest.raises(NotUniqueError):
            utils.problem.create_problem(pid=pid)
        # another domain is fine
        other = random_domain()
        utils.problem.create_problem(domain_id=other.domain_id, pid=pid)

    def test_invalid_alias(self):
        with pytest.raises(ValueError):
            utils.problem.create_problem(pid='1000')

    def test_set_testdata_requires_zip(self):
        problem = utils.problem.create_problem()
        with pytest.raises(BadProblemArchive):
            problem.set_testdata(b'not a zip')
        assert not problem.has_data

    def test_replace_testdata(self):
        problem = utils.problem.create_problem(
            data=utils.problem.create_testdata())
        data = utils.problem.create_testdata({'2.in': '2', '2.out': '2'})
        problem.set_testdata(data)
        assert problem.get_testdata() == data
        assert problem.data_md5 == hashlib.md5(data).hexdigest()

    def test_algorithm_difficulty(self):
        problem = utils.problem.create_problem()
        assert problem.algorithm_difficulty() is None
        problem.update(n_submit=10, n_accept=10)
        assert problem.reload().algorithm_difficulty() == 1
        problem.update(n_submit=10, n_accept=0)
        assert problem.reload().algorithm_difficulty() == 9


class TestProblemList(BaseTester):

    def test_hidden_problem_is_not_listed(self, client_admin, client_student):
        hidden = utils.problem.create_problem(hidden=True)
        visible = utils.problem.create_problem()
        rv, rv_json, rv_data = self.request(client_student, 'get', '/p/')
        assert rv.status_code == 200, rv_json
        doc_ids = [p['docId'] for p in rv_data['pdocs']]
        assert visible.doc_id in doc_ids
        assert hidden.doc_id not in doc_ids
        rv, rv_json, rv_data = self.request(client_admin, 'get', '/p/')
        doc_ids = [p['docId'] for p in rv_data['pdocs']]
        assert hidden.doc_id in doc_ids

    def test_brief_has_no_content(self, client_student):
        utils.problem.create_problem()
        _, _, rv_data = self.request(client_student, 'get', '/p/')
        assert all('content' not in p for p in rv_data['pdocs'])

    def test_search(self, client_student):
        keyword = secrets.token_hex(6)
        problem = utils.problem.create_problem(title=f'find {keyword}')
        utils.problem.create_problem()
        _, _, rv_data = self.request(
            client_student,
            'get',
            f'/p/?q={keyword.upper()}',
        )
        assert [p['docId'] for p in rv_data['pdocs']] == [problem.doc_id]

    @pytest.mark.parametrize('page', ['abc', '0'])
    def test_invalid_page(self, client_student, page):
        rv = client_student.get(f'/p/?page={page}')
        assert rv.status_code == 400

    def test_list_status(self, client_student):
        problem = utils.problem.create_problem()
        problem.set_star(User('student'), True)
        _, _, rv_data = self.request(client_student, 'get', '/p/')
        assert rv_data['psdict'][str(problem.doc_id)]['star'] is True

    def test_listener_narrows_list(self, client_student, listen):
        owner = 'student2'
        mine = utils.problem.create_problem(owner=owner)
        other = utils.problem.create_problem()
        calls = []

        def only_student2(query, user, domain):
            calls.append((user.username, domain.domain_id))
            query['owner'] = owner

        listen('problem/list', only_student2)
        _, _, rv_data = self.request(client_student, 'get', '/p/')
        doc_ids = [p['docId'] for p in rv_data['pdocs']]
        assert mine.doc_id in doc_ids
        assert other.doc_id not in doc_ids
        assert calls == [('student', 'system')]

    def test_category(self, client_student):
        category, tag = f'c{secrets.token_hex(3)}', f't{secrets.token_hex(3)}'
        problem = utils.problem.create_problem(
            category=[category],
            tag=[tag],
        )
        utils.problem.create_problem(category=[category])
        rv, rv_json, rv_data = self.request(
            client_student,
            'get',
            f'/p/category/{category}+{tag}',
        )
        assert rv.status_code == 200, rv_json
        assert [p['docId'] for p in rv_data['pdocs']] == [problem.doc_id]
        assert rv_data['category'] == f'{category}+{tag}'
        _, _, rv_data = self.request(
            client_student,
            'get',
            f'/p/category/{category}',
        )
        assert len(rv_data['pdocs']) == 2

    def test_invalid_category(self, client_student):
        rv = client_student.get('/p/category/,')
        assert rv.status_code == 400

    def test_other_domain(self, client_student):
        domain = random_domain()
        problem = utils.problem.create_problem(domain_id=domain.domain_id)
        _, _, rv_data = self.request(
            client_student,
            'get',
            f'/d/{domain.domain_id}/p/',
        )
        assert [p['docId'] for p in rv_data['pdocs']] == [problem.doc_id]
        assert rv_data['pdocs'][0]['domainId'] == domain.domain_id

    def test_domain_not_found(self, client_student):
        rv = client_student.get('/d/nowhere/p/')
        assert rv.status_code == 404

    def test_guest_without_view_permission(self, client_student):
        domain = random_domain()
        domain.set_role_permission('default', Domain.Permission.NONE)
        rv = client_student.get(f'/d/{domain.domain_id}/p/')
        assert rv.status_code == 403


class TestProblemRandom(BaseTester):

    def test_random(self, client_student):
        domain = random_domain()
        url = f'/d/{domain.domain_id}/p/random'
        rv, rv_json, _ = self.request(client_student, 'get', url)
        assert rv.status_code == 404
        assert rv_json['message'] == 'No problem'
        problem = utils.problem.create_problem(domain_id=domain.domain_id)
        rv, _, rv_data = self.request(client_student, 'get', url)
        assert rv.status_code == 302
        assert rv_data['pid'] == problem.doc_id
        assert rv.headers['Location'].endswith(
            f'/d/{domain.domain_id}/p/{problem.doc_id}')

    def test_random_skips_hidden(self, client_admin, client_student):
        domain = random_domain()
        utils.problem.create_problem(domain_id=domain.domain_id, hidden=True)
        url = f'/d/{domain.domain_id}/p/random'
        assert client_student.get(url).status_code == 404
        assert client_admin.get(url).status_code == 302

    def test_random_in_category(self, client_student):
        domain = random_domain()
        problem = utils.problem.create_problem(
            domain_id=domain.domain_id,
            category=['dp'],
        )
        utils.problem.create_problem(domain_id=domain.domain_id)
        url = f'/d/{domain.domain_id}/p/random?category=dp'
        for _ in range(5):
            _, _, rv_data = self.request(client_student, 'get', url)
            assert rv_data['pid'] == problem.doc_id
        rv = client_student.get(
            f'/d/{domain.domain_id}/p/random?category=graph')
        assert rv.status_code == 404


class TestProblemDetail(BaseTester):

    def test_detail(self, client_student):
        pid = random_pid()
        problem = utils.problem.create_problem(pid=pid)
        for key in (pid, problem.doc_id):
            rv, rv_json, rv_data = self.request(
                client_student,
                'get',
                f'/p/{key}',
            )
            assert rv.status_code == 200, rv_json
            assert rv_data['pdoc']['docId'] == problem.doc_id
            assert rv_data['pdoc']['content'] == problem.content
            assert rv_data['udoc']['username'] == 'admin'

    def test_not_found(self, client_student):
        rv = client_student.get('/p/99999')
        assert rv.status_code == 404

    def test_hidden(self, client_admin, client_student, forge_client):
        problem = utils.problem.create_problem(hidden=True)
        assert client_student.get(f'/p/{problem.doc_id}').status_code == 403
        assert client_admin.get(f'/p/{problem.doc_id}').status_code == 200
        # the owner always see their problem
        mine = utils.problem.create_problem(owner='student', hidden=True)
        assert client_student.get(f'/p/{mine.doc_id}').status_code == 200
        client = forge_client('student2')
        assert client.get(f'/p/{mine.doc_id}').status_code == 403

    def test_listener_receives_problem(self, client_student, listen):
        problem = utils.problem.create_problem()
        received = []
        listen(
            'problem/get',
            lambda pdoc, user: received.append((pdoc.doc_id, user.username)),
        )
        client_student.get(f'/p/{problem.doc_id}')
        assert received == [(problem.doc_id, 'student')]

    def test_star(self, client_student):
        problem = utils.problem.create_problem()
        url = f'/p/{problem.doc_id}'
        _, _, rv_data = self.request(client_student, 'post', f'{url}/star')
        assert rv_data['star'] is True
        _, _, rv_data = self.request(client_student, 'get', url)
        assert rv_data['psdoc']['star'] is True
        _, _, rv_data = self.request(client_student, 'delete', f'{url}/star')
        assert rv_data['star'] is False
        _, _, rv_data = self.request(client_student, 'get', url)
        assert rv_data['psdoc']['star'] is False


class TestProblemCreate(BaseTester):

    def test_create(self, client_admin):
        pid = random_pid()
        rv, rv_json, rv_data = self.request(
            client_admin,
            'post',
            '/p/create',
            json={
                'title': 'A + B',
                'pid': pid,
                'content': 'Add two numbers.',
                'hidden': True,
            },
        )
        assert rv.status_code == 302, rv_json
        assert rv.headers['Location'].endswith(f'/p/{rv_data["pid"]}/settings')
        problem = Problem.get('system', rv_data['pid'])
        assert problem.pid == pid
        assert problem.hidden is True
        assert problem.owner == 'admin'

    def test_create_with_description(self, client_admin):
        rv, rv_json, rv_data = self.request(
            client_admin,
            'post',
            '/p/create',
            json={
                'title': 'A + B',
                'description': {
                    'description': 'Add two numbers.',
                    'samples': [['1 2', '3']],
                },
            },
        )
        assert rv.status_code == 302, rv_json
        problem = Problem.get('system', rv_data['pid'])
        assert problem.pid is None
        assert '## Description\nAdd two numbers.' in problem.content
        assert '## Sample Input 1' in problem.content

    def test_create_in_domain(self, client_admin):
        domain = random_domain()
        rv, _, rv_data = self.request(
            client_admin,
            'post',
            f'/d/{domain.domain_id}/p/create',
            json={
                'title': 'A + B',
                'content': 'Add two numbers.',
            },
        )
        assert rv.status_code == 302
        assert rv_data['pid'] == 1
        assert rv.headers['Location'].endswith(
            f'/d/{domain.domain_id}/p/1/settings')

    def test_student_can_not_create(self, client_student):
        rv = client_student.post(
            '/p/create',
            json={
                'title': 'A + B',
                'content': 'Add two numbers.',
            },
        )
        assert rv.status_code == 403

    @pytest.mark.parametrize('payload', [
        {
            'content': 'no title'
        },
        {
            'title': 'x' * 65,
            'content': 'too long title'
        },
        {
            'title': 'no content'
        },
        {
            'title': 'bad alias',
            'content': 'content',
            'pid': '1000',
        },
    ])
    def test_invalid_problem(self, client_admin, payload):
        rv = client_admin.post('/p/create', json=payload)
        assert rv.status_code == 400

    def test_duplicated_alias(self, client_admin):
        pid = random_pid()
        utils.problem.create_problem(pid=pid)
        rv, rv_json, _ = self.request(
            client_admin,
            'post',
            '/p/create',
            json={
                'title': 'A + B',
                'content': 'Add two numbers.',
                'pid': pid,
            },
        )
        assert rv.status_code == 400
        assert 'already exists' in rv_json['message']


class TestProblemManage(BaseTester):

    def test_edit(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        pid = random_pid()
        rv, rv_json, _ = self.request(
            client_student,
            'post',
            f'/p/{problem.doc_id}/edit',
            json={
                'title': 'New title',
                'content': 'New content',
                'pid': pid,
            },
        )
        assert rv.status_code == 302, rv_json
        problem.reload()
        assert (problem.title, problem.content, problem.pid) == (
            'New title',
            'New content',
            pid,
        )
        assert client_student.get(f'/p/{pid}').status_code == 200
        # omitted alias is kept
        client_student.post(
            f'/p/{problem.doc_id}/edit',
            json={
                'title': 'New title',
                'content': 'Newer content',
            },
        )
        assert problem.reload().pid == pid
        # empty alias removes it
        client_student.post(
            f'/p/{problem.doc_id}/edit',
            json={
                'title': 'New title',
                'content': 'Newer content',
                'pid': '',
            },
        )
        assert problem.reload().pid is None

    def test_edit_to_duplicated_alias(self, client_admin):
        pid = random_pid()
        utils.problem.create_problem(pid=pid)
        problem = utils.problem.create_problem()
        rv = client_admin.post(
            f'/p/{problem.doc_id}/edit',
            json={
                'title': 'title',
                'content': 'content',
                'pid': pid,
            },
        )
        assert rv.status_code == 400

    def test_keep_own_alias(self, client_admin):
        pid = random_pid()
        problem = utils.problem.create_problem(pid=pid)
        rv = client_admin.post(
            f'/p/{problem.doc_id}/edit',
            json={
                'title': 'title',
                'content': 'content',
                'pid': pid,
            },
        )
        assert rv.status_code == 302

    def test_get_edit(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        _, _, rv_data = self.request(
            client_student,
            'get',
            f'/p/{problem.doc_id}/edit',
        )
        assert rv_data['pdoc']['title'] == problem.title

    def test_others_can_not_manage(self, forge_client):
        problem = utils.problem.create_problem(owner='student')
        client = forge_client('student2')
        for suffix in ('edit', 'settings', 'upload'):
            rv = client.get(f'/p/{problem.doc_id}/{suffix}')
            assert rv.status_code == 403, suffix

    def test_settings(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        rv, rv_json, rv_data = self.request(
            client_student,
            'post',
            f'/p/{problem.doc_id}/settings',
            json={
                'hidden': True,
                'category': 'dp+graph',
                'tag': ['easy'],
                'difficultySetting': 1,
                'difficultyAdmin': 5,
            },
        )
        assert rv.status_code == 302, rv_json
        problem.reload()
        assert problem.hidden is True
        assert problem.category == ['dp', 'graph']
        assert problem.tag == ['easy']
        assert problem.difficulty_admin == 5
        assert problem.difficulty == 5
        assert rv_data['pdoc']['difficulty'] == 5

    def test_get_settings(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        problem.edit(config={'time': '1s'})
        _, _, rv_data = self.request(
            client_student,
            'get',
            f'/p/{problem.doc_id}/settings',
        )
        assert rv_data['config'].strip() == 'time: 1s'
        assert len(rv_data['difficultySettings']) == 3

    @pytest.mark.parametrize('payload', [
        {
            'difficultyAdmin': 10
        },
        {
            'difficultyAdmin': 'hard'
        },
        {
            'difficultySetting': 7
        },
        {
            'category': 123
        },
        {
            'tag': ['ok', 1]
        },
    ])
    def test_invalid_settings(self, client_student, payload):
        problem = utils.problem.create_problem(owner='student')
        rv = client_student.post(
            f'/p/{problem.doc_id}/settings',
            json=payload,
        )
        assert rv.status_code == 400

    def test_setting_listener(self, client_student, listen):

        def keep_visible(update, user, problem):
            update.pop('hidden', None)

        listen('problem/setting', keep_visible)
        problem = utils.problem.create_problem(owner='student')
        rv = client_student.post(
            f'/p/{problem.doc_id}/settings',
            json={
                'hidden': True,
                'tag': ['easy'],
            },
        )
        assert rv.status_code == 302
        problem.reload()
        assert problem.hidden is False
        assert problem.tag == ['easy']

    def test_settings_config(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        rv, rv_json, rv_data = self.request(
            client_student,
            'post',
            f'/p/{problem.doc_id}/settings/config',
            json={'yaml': 'time: 1s\nmemory: 256m\n'},
        )
        assert rv.status_code == 200, rv_json
        assert rv_data['config'] == {'time': '1s', 'memory': '256m'}
        assert problem.reload().config == {'time': '1s', 'memory': '256m'}

    @pytest.mark.parametrize('text', ['time: [1s', '- 1s\n- 2s', 'plain'])
    def test_invalid_config(self, client_student, text):
        problem = utils.problem.create_problem(owner='student')
        rv = client_student.post(
            f'/p/{problem.doc_id}/settings/config',
            json={'yaml': text},
        )
        assert rv.status_code == 400


class TestProblemData(BaseTester):

    def test_upload(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        url = f'/p/{problem.doc_id}/upload'
        _, _, rv_data = self.request(client_student, 'get', url)
        assert rv_data['md5'] is None
        data = utils.problem.create_testdata()
        rv, rv_json, rv_data = self.request(
            client_student,
            'post',
            url,
            data={'file': (io.BytesIO(data), 'data.zip')},
        )
        assert rv.status_code == 200, rv_json
        assert rv_data['md5'] == hashlib.md5(data).hexdigest()
        _, _, rv_data = self.request(client_student, 'get', url)
        assert rv_data['md5'] == hashlib.md5(data).hexdigest()
        assert problem.reload().get_testdata() == data

    def test_upload_invalid_file(self, client_student):
        problem = utils.problem.create_problem(owner='student')
        url = f'/p/{problem.doc_id}/upload'
        rv, rv_json, _ = self.request(
            client_student,
            'post',
            url,
            data={'file': (io.BytesIO(b'not a zip'), 'data.zip')},
        )
        assert rv.status_code == 400
        assert rv_json['message'] == 'Only accept zip file.'
        rv, rv_json, _ = self.request(client_student, 'post', url, data={})
        assert rv.status_code == 400
        assert rv_json['message'] == 'No file'

    def test_download(self, client_student, client_judge, forge_client):
        data = utils.problem.create_testdata()
        problem = utils.problem.create_problem(owner='student', data=data)
        url = f'/p/{problem.doc_id}/data'
        rv = client_student.get(url)
        assert rv.status_code == 200
        assert rv.data == data
        # judge daemons read every data
        rv = client_judge.get(url)
        assert rv.status_code == 200
        assert rv.data == data
        rv = forge_client('student2').get(url)
        assert rv.status_code == 403

    def test_judge_reads_hidden_data(self, client_judge, client_student):
        data = utils.problem.create_testdata()
        problem = utils.problem.create_problem(hidden=True, data=data)
        url = f'/p/{problem.doc_id}/data'
        assert client_judge.get(url).status_code == 200
        assert client_student.get(url).status_code == 403

    def test_download_without_data(self, client_admin):
        problem = utils.problem.create_problem()
        rv = client_admin.get(f'/p/{problem.doc_id}/data')
        assert rv.status_code == 404
        rv = client_admin.get('/p/99999/data')
        assert rv.status_code == 404

    def test_export(self, client_admin, forge_client):
        pid = random_pid()
        problem = utils.problem.create_problem(
            owner='student',
            pid=pid,
            tag=['easy'],
            data=utils.problem.create_testdata(),
        )
        rv = client_admin.get(f'/p/{problem.doc_id}/export')
        assert rv.status_code == 200
        assert rv.mimetype == 'application/zip'
        assert zip_names(rv.data) == {
            'problem.json',
            '1.in',
            '1.out',
            'config.yaml',
        }
        with ZipFile(io.BytesIO(rv.data)) as zf:
            pdoc = json.loads(zf.read('problem.json'))
        assert pdoc['pid'] == pid
        assert pdoc['title'] == problem.title
        assert pdoc['tag'] == ['easy']
        assert 'acMsg' in pdoc
        # others only get the statement
        rv = forge_client('student2').get(f'/p/{problem.doc_id}/export')
        assert zip_names(rv.data) == {'problem.json'}

    def test_import(self, client_admin):
        pid = random_pid()
        problem = utils.problem.create_problem(
            pid=pid,
            category=['dp'],
            data=utils.problem.create_testdata(),
        )
        archive = client_admin.get(f'/p/{problem.doc_id}/export').data
        rv, rv_json, rv_data = self.request(
            client_admin,
            'post',
            '/p/import',
            data={'file': (io.BytesIO(archive), 'problem.zip')},
        )
        assert rv.status_code == 302, rv_json
        imported = Problem.get('system', rv_data['pid'])
        assert imported.doc_id != problem.doc_id
        assert imported.title == problem.title
        assert imported.category == ['dp']
        # alias is taken in this domain
        assert imported.pid is None
        assert imported.has_data
        assert '1.in' in zip_names(imported.get_testdata())
        # but not in another one
        domain = random_domain()
        rv, _, rv_data = self.request(
            client_admin,
            'post',
            f'/d/{domain.domain_id}/p/import',
            data={'file': (io.BytesIO(archive), 'problem.zip')},
        )
        assert rv.status_code == 302
        assert Problem.get(domain.domain_id, rv_data['pid']).pid == pid

    @pytest.mark.parametrize('files', [
        {
            '1.in': '1'
        },
        {
            'problem.json': 'not json'
        },
        {
            'problem.json': '[]'
        },
        {
            'problem.json': '{"content": "no title"}'
        },
        {
            'problem.json': '{"title": "A", "content": "B", "tag": "dp"}'
        },
        {
            'problem.json': '{"title": "A", "content": "B", "tag": [1]}'
        },
        {
            'problem.json': '{"title": "A", "content": "B", "category": {}}'
        },
        {
            'problem.json': '{"title": "A", "content": "B", "config": [1, 2]}'
        },
        {
            'problem.json': '{"title": "A", "content": "B", "acMsg": 1}'
        },
    ])
    def test_import_invalid_archive(self, client_admin, files):
        archive = utils.problem.create_testdata(files)
        total = engine.Problem.objects.count()
        rv = client_admin.post(
            '/p/import',
            data={'file': (io.BytesIO(archive), 'problem.zip')},
        )
        assert rv.status_code == 400
        # nothing is written
        assert engine.Problem.objects.count() == total

    def test_import_not_zip(self, client_admin):
        rv, rv_json, _ = self.request(
            client_admin,
            'post',
            '/p/import',
            data={'file': (io.BytesIO(b'not a zip'), 'problem.zip')},
        )
        assert rv.status_code == 400
        assert rv_json['message'] == 'Only accept zip file.'

    def test_student_can_not_import(self, client_student):
        archive = utils.problem.create_testdata(
            {'problem.json': '{"title": "A", "content": "B"}'})
        rv = client_student.post(
            '/p/import',
            data={'file': (io.BytesIO(archive), 'problem.zip')},
        )
        assert rv.status_code == 403


class TestProblemCopy(BaseTester):

    def test_copy(self, client_admin):
        problem = utils.problem.create_problem(
            pid=random_pid(),
            data=utils.problem.create_testdata(),
        )
        domain = random_domain()
        rv, rv_json, rv_data = self.request(
            client_admin,
            'post',
            f'/p/{problem.doc_id}/copy',
            json={'dest': domain.domain_id},
        )
        assert rv.status_code == 302, rv_json
        assert rv.headers['Location'].endswith(
            f'/d/{domain.domain_id}/p/{rv_data["pid"]}/settings')
        copied = Problem.get(domain.domain_id, rv_data['pid'])
        assert copied.title == problem.title
        assert copied.pid == problem.pid
        assert copied.owner == 'admin'
        assert not copied.has_data
        assert copied.data_ref == {
            'domainId': 'system',
            'pid': problem.doc_id,
        }
        # data of a copy points to the source
        rv = client_admin.get(f'/d/{domain.domain_id}/p/{copied.doc_id}/data')
        assert rv.status_code == 302
        assert rv.headers['Location'].endswith(f'/p/{problem.doc_id}/data')
        # a copy can not be copied again
        rv = client_admin.post(
            f'/d/{domain.domain_id}/p/{copied.doc_id}/copy',
            json={'dest': 'system'},
        )
        assert rv.status_code == 400

    def test_copy_without_data(self, client_admin):
        problem = utils.problem.create_problem()
        domain = random_domain()
        _, _, rv_data = self.request(
            client_admin,
            'post',
            f'/p/{problem.doc_id}/copy',
            json={
                'dest': domain.domain_id,
                'hidden': True,
            },
        )
        copied = Problem.get(domain.domain_id, rv_data['pid'])
        assert copied.data_ref is None
        assert copied.hidden is True

    def test_copy_to_unknown_domain(self, client_admin):
        problem = utils.problem.create_problem()
        rv = client_admin.post(
            f'/p/{problem.doc_id}/copy',
            json={'dest': 'nowhere'},
        )
        assert rv.status_code == 404

    def test_copy_without_permission(self, client_student):
        problem = utils.problem.create_problem()
        domain = random_domain()
        rv = client_student.post(
            f'/p/{problem.doc_id}/copy',
            json={'dest': domain.domain_id},
        )
        assert rv.status_code == 403


class TestProblemRecords(BaseTester):

    def test_statistics(self, client_student):
        problem = utils.problem.create_problem()
        utils.record.create_record(problem, 'student')
        utils.record.create_record(problem, 'student2').end(
            Record.Status.ACCEPTED)
        utils.record.create_record(problem, 'student', pretest=True)
        rv, rv_json, rv_data = self.request(
            client_student,
            'get',
            f'/p/{problem.doc_id}/statistics',
        )
        assert rv.status_code == 200, rv_json
        assert rv_data['count'] == {'WAITING': 1, 'ACCEPTED': 1}
        assert 'content' not in rv_data['pdoc']

    def test_rejudge(self, client_admin, client_student):
        problem = utils.problem.create_problem()
        record = utils.record.create_record(problem, 'student').end(
            Record.Status.WRONG_ANSWER)
        pretest = utils.record.create_record(problem, 'student', pretest=True)
        pretest.end(Record.Status.ACCEPTED)
        url = f'/p/{problem.doc_id}/rejudge'
        assert client_student.post(url).status_code == 403
        rv, rv_json, rv_data = self.request(client_admin, 'post', url)
        assert rv.status_code == 200, rv_json
        assert rv_data['count'] == 1
        record.reload()
        assert record.status == Record.Status.WAITING
        assert record.rejudged is True
        assert pretest.reload().status == Record.Status.ACCEPTED
