import io
import os

from PIL import Image

from dressmart import images


def png_bytes(size=(40, 30), color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, 'PNG')
    buffer.seek(0)
    return buffer


def upload(client, data, filename):
    return client.post('/upload', data={'product': (data, filename)}, content_type='multipart/form-data')


def test_upload_stores_and_serves_image(app, client):
    response = upload(client, png_bytes(), 'red dress.png')

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] == 1
    assert body['image_url'].startswith('http://localhost/images/')
    stored_name = body['image_url'].rsplit('/', 1)[1]
    assert stored_name.endswith('_red_dress.png')
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], stored_name))

    served = client.get(f'/images/{stored_name}')
    assert served.status_code == 200
    assert served.headers['Cache-Control'].startswith('public')


def test_same_file_twice_gets_distinct_names(client):
    first = upload(client, png_bytes(), 'a.png').get_json()['image_url']
    second = upload(client, png_bytes(), 'a.png').get_json()['image_url']
    assert first != second


def test_upload_requires_file(client):
    response = client.post('/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json() == {'success': 0, 'message': 'No file uploaded'}


def test_upload_rejects_extension(client):
    response = upload(client, io.BytesIO(b'#!/bin/sh'), 'script.sh')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'File type not allowed'


def test_upload_rejects_non_image_content(app, client):
    response = upload(client, io.BytesIO(b'definitely not a png'), 'fake.png')

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Uploaded file is not a valid image'
    assert os.listdir(app.config['UPLOAD_FOLDER']) == []


def test_large_upload_is_downscaled(app, client):
    image_url = upload(client, png_bytes(size=(1600, 1200)), 'big.png').get_json()['image_url']
    stored = os.path.join(app.config['UPLOAD_FOLDER'], image_url.rsplit('/', 1)[1])

    with Image.open(stored) as img:
        assert img.size == (800, 600)


def test_missing_image_is_404(client):
    assert client.get('/images/nothing-here.png').status_code == 404


def test_compress_image_reports_sizes(tmp_path):
    path = tmp_path / 'photo.jpg'
    Image.new('RGB', (1000, 500), (10, 120, 200)).save(path, 'JPEG', quality=100)

    success, original, compressed, name = images.compress_image(path, max_width=400, max_height=400)

    assert success is True
    assert name == 'photo.jpg'
    assert original > compressed > 0
    with Image.open(path) as img:
        assert img.size == (400, 200)


def test_compress_image_failures(tmp_path):
    broken = tmp_path / 'broken.jpg'
    broken.write_bytes(b'nope')

    assert images.compress_image(broken)[0] is False
    assert images.compress_image(tmp_path / 'missing.jpg')[0] is False


def test_command_line_compression(tmp_path):
    Image.new('RGB', (1200, 900)).save(tmp_path / 'one.png')
    (tmp_path / 'notes.txt').write_text('ignored')

    assert images.main(['--folder', str(tmp_path), '--width', '300', '--height', '300']) == 0
    with Image.open(tmp_path / 'one.png') as img:
        assert img.size == (300, 225)

    assert images.main(['--folder', str(tmp_path / 'absent')]) == 1


def test_command_line_reports_failures(tmp_path):
    (tmp_path / 'bad.png').write_bytes(b'not an image')
    assert images.main(['--folder', str(tmp_path)]) == 1
